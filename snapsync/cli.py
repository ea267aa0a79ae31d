import logging
from typing import Annotated

from cyclopts import App, Parameter
from dotenv import load_dotenv
from rich.logging import RichHandler

from snapsync.sync.cli import sync_app

app = App(name="snapsync", help="Keep a local data snapshot in sync with its remote copy")
app.command(sync_app, name="sync")

load_dotenv()


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


@app.meta.default
def launcher(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    verbose: Annotated[bool, Parameter(help="Show debug logging")] = False,
):
    configure_logging(verbose)
    return app(tokens)


def main():
    app.meta()
