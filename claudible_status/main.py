# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import typer

from claudible_status.client.cli import (
    balance_command,
    key_app,
    lookup_command,
    watch_command,
)
from claudible_status.logging import configure_logging


app = typer.Typer(help="Claudible usage and balance dashboard CLI")
app.add_typer(key_app, name="key")
app.command(name="lookup", help="Fetch the dashboard once and print it.")(lookup_command)
app.command(name="watch", help="Follow live balance and usage updates.")(watch_command)
app.command(name="balance", help="Print the last cached balance.")(balance_command)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "WARNING", "--log-level", envvar="CLAUDIBLE_LOG_LEVEL", help="Minimum log level"
    ),
) -> None:
    """
    claudible-status: live usage and balance for your Claudible account.
    """
    configure_logging(log_level.upper())


if __name__ == "__main__":
    app()
