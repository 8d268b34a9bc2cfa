from typing import Annotated, Optional, TypedDict

import typer
from anystore.cli import ErrorHandler
from anystore.logging import configure_logging
from rich.console import Console

from daipk import __version__
from daipk.allocator import DistributedPrimaryKey
from daipk.factories import get_pool
from daipk.model import Capacity
from daipk.settings import Settings
from daipk.sharding import ShardedPrimaryKey

settings = Settings()
cli = typer.Typer(
    no_args_is_help=True,
    pretty_exceptions_enable=settings.debug,
    name="Distributed auto-incrementing primary keys",
)
console = Console(stderr=True)


class State(TypedDict):
    uri: str | None


STATE: State = {"uri": None}


class Allocator(ErrorHandler):
    """
    Build the allocator for a command. Errors inside the context are printed
    and exit with code 1, unless in debug mode.
    """

    def __init__(
        self,
        identity: str,
        capacity: Capacity | None = None,
        sharded: bool = False,
        shards: int | None = None,
    ) -> None:
        super().__init__()
        self.identity = identity
        self.capacity = capacity or settings.capacity
        self.sharded = sharded or bool(shards)
        self.shards = shards

    def __enter__(self) -> DistributedPrimaryKey | ShardedPrimaryKey:
        super().__enter__()
        try:
            return self.make()
        except Exception as e:
            self.__exit__(type(e), e, e.__traceback__)
            raise

    def make(self) -> DistributedPrimaryKey | ShardedPrimaryKey:
        pool = get_pool(STATE["uri"])
        if self.sharded:
            return ShardedPrimaryKey(
                pool,
                self.identity,
                capacity=self.capacity,
                separator=settings.separator,
                shards=self.shards,
                max_shards=max(self.shards or 0, settings.max_shards),
            )
        return DistributedPrimaryKey(
            pool,
            self.identity,
            separator=settings.separator,
            capacity=self.capacity,
        )

    def __exit__(self, e, msg, tb):
        if msg is None:
            return super().__exit__(e, msg, tb)
        if isinstance(msg, typer.Exit) or settings.debug:
            return False
        console.print(f"[red][bold]{e.__name__}[/bold]: {msg}[/red]")
        raise typer.Exit(code=1)


def read_keys(lines: typer.FileText) -> list[str]:
    return [line.strip() for line in lines if line.strip()]


@cli.callback(invoke_without_command=True)
def cli_daipk(
    version: Annotated[Optional[bool], typer.Option(..., help="Show version")] = False,
    settings: Annotated[
        Optional[bool], typer.Option(..., help="Show current settings")
    ] = False,
    uri: Annotated[str | None, typer.Option(..., help="Redis uri")] = None,
):
    if version:
        console.print(__version__)
        raise typer.Exit()
    settings_ = Settings()
    configure_logging(level=settings_.log_level)
    STATE["uri"] = uri
    if settings:
        console.print(settings_)
        console.print(STATE)
        raise typer.Exit()


@cli.command("insert")
def cli_insert(
    identity: Annotated[str, typer.Option("-n", "--identity", help="Identity")],
    in_file: Annotated[
        typer.FileText, typer.Option("-i", help="Primary keys, one per line")
    ] = "-",
    capacity: Annotated[
        Optional[Capacity], typer.Option(help="Capacity policy")
    ] = None,
    sharded: Annotated[
        bool, typer.Option(help="Add shards `{identity}_{index}` when full")
    ] = False,
):
    """
    Assign unique ids to primary keys and print the result as json
    """
    with Allocator(identity, capacity, sharded) as allocator:
        result = allocator.insert(read_keys(in_file))
        typer.echo(result.model_dump_json())


@cli.command("fetch")
def cli_fetch(
    identity: Annotated[str, typer.Option("-n", "--identity", help="Identity")],
    in_file: Annotated[
        typer.FileText, typer.Option("-i", help="Primary keys, one per line")
    ] = "-",
    sharded: Annotated[
        bool, typer.Option(help="Look up all shards `{identity}_{index}`")
    ] = False,
    shards: Annotated[
        Optional[int],
        typer.Option(help="Number of shards (discovered if not given)"),
    ] = None,
):
    """
    Look up unique ids of primary keys and print the result as json
    """
    with Allocator(identity, sharded=sharded, shards=shards) as allocator:
        result = allocator.fetch_unique_ids(read_keys(in_file))
        typer.echo(result.model_dump_json())
