"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging

import typer

from koreaderctl.core.engine import DispatchEngine, describe_connection
from koreaderctl.core.errors import KOReaderCtlError, SettingsUnavailableError
from koreaderctl.core.mapping import InputMapper
from koreaderctl.core.model import DispatchFailed, DispatchState
from koreaderctl.core.service import ControllerService
from koreaderctl.inputs.gamepad import GamepadReader, pump

app = typer.Typer(help="Turn KOReader pages from a gamepad over KOReader's HTTP control interface")
config_app = typer.Typer(help="Show or change the reader endpoint")
app.add_typer(config_app, name="config")


def _build_service() -> ControllerService:
    service = ControllerService()
    for warning in getattr(service, "runtime_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _fail(exc: KOReaderCtlError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@app.command("commands")
def list_commands() -> None:
    """List the logical commands that can be bound to buttons."""
    service = _build_service()
    for command in service.list_commands():
        typer.echo(f"{command.id}: {command.display_name} - {command.description}")


@app.command("buttons")
def list_buttons() -> None:
    """List gamepad buttons and the command each one triggers."""
    try:
        service = _build_service()
        for button, command in service.list_buttons():
            bound = command.id if command else "<unmapped>"
            typer.echo(f"{button.name} ({button.label}) -> {bound}")
    except KOReaderCtlError as exc:
        raise _fail(exc) from None


@app.command("map")
def map_button(
    button: str,
    command: str = typer.Argument(..., help="Command id, or 'none' to unmap"),
) -> None:
    """Bind BUTTON to COMMAND in the settings file."""
    command_id = None if command.lower() == "none" else command
    try:
        service = _build_service()
        mapped = service.set_button_mapping(button, command_id)
        typer.echo(f"{mapped.name} -> {command_id or '<unmapped>'}")
    except KOReaderCtlError as exc:
        raise _fail(exc) from None


@config_app.command("show")
def show_config() -> None:
    """Print the configured endpoint and the settings file location."""
    try:
        service = _build_service()
        endpoint = service.endpoint()
        typer.echo(f"Endpoint: {endpoint}")
        typer.echo(f"Settings file: {service.settings.path}")
    except KOReaderCtlError as exc:
        raise _fail(exc) from None


@config_app.command("set")
def set_config(
    host: str = typer.Option(..., "--host", help="Reader IPv4 address"),
    port: str = typer.Option("8080", "--port", help="KOReader HTTP port"),
) -> None:
    """Save a new reader endpoint."""
    try:
        service = _build_service()
        endpoint = service.save_endpoint(host, port)
        typer.echo(f"Saved endpoint {endpoint}")
    except KOReaderCtlError as exc:
        raise _fail(exc) from None


@app.command("probe")
def probe() -> None:
    """Check that KOReader answers at the configured endpoint."""
    try:
        service = _build_service()
        endpoint = service.probe()
        typer.echo(f"Connected to {endpoint}")
    except KOReaderCtlError as exc:
        raise _fail(exc) from None


@app.command("send")
def send(command: str = typer.Argument(..., help="next, previous, next_page or previous_page")) -> None:
    """Send a single command to the reader."""
    try:
        service = _build_service()
        outcome = service.send_command(command)
    except KOReaderCtlError as exc:
        raise _fail(exc) from None
    if isinstance(outcome, DispatchFailed):
        typer.echo(outcome.feedback, err=True)
        raise typer.Exit(code=1)
    typer.echo(outcome.feedback)


@app.command("run")
def run_controller(
    device: str | None = typer.Option(None, "--device", help="evdev path, e.g. /dev/input/event5"),
    grab: bool = typer.Option(False, "--grab", help="Grab the device exclusively"),
    log_level: str = typer.Option("INFO", "--log-level", envvar="LOG_LEVEL", help="Python logging level"),
) -> None:
    """Drive the reader from a gamepad until interrupted."""
    level = log_level.upper()
    if level not in logging.getLevelNamesMapping():
        typer.echo(f"Error: Unknown log level '{log_level}'", err=True)
        raise typer.Exit(code=1)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        service = _build_service()
        mapper = service.load_mapper()
        asyncio.run(_run(service, mapper, GamepadReader(device, grab=grab)))
    except KOReaderCtlError as exc:
        raise _fail(exc) from None
    except KeyboardInterrupt:
        typer.echo("Stopped")


async def _run(service: ControllerService, mapper: InputMapper, reader: GamepadReader) -> None:
    engine = DispatchEngine(service.settings, service.client_factory(), mapper=mapper)
    last: dict[str, object] = {}

    def _render(state: DispatchState) -> None:
        connection = describe_connection(state.connection_status)
        if connection != last.get("connection"):
            typer.echo(f"[{state.endpoint}] {connection}")
        if state.last_feedback and state.last_feedback != last.get("feedback"):
            typer.echo(state.last_feedback)
        last.update(connection=connection, feedback=state.last_feedback)

    engine.subscribe(_render)
    try:
        await engine.start()
        if not engine.state.is_ready:
            raise SettingsUnavailableError(engine.state.error or "Settings unavailable")
        await pump(reader.events(), engine)
    finally:
        await engine.close()
        await engine.client.aclose()


def run() -> None:
    app()


if __name__ == "__main__":
    run()
