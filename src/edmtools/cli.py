"""edmtools CLI – command-line interface for decoding JPI EDM recordings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from edmtools import __version__
from edmtools.decoder.errors import DecodeError
from edmtools.units import unix_to_datetime

_LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


@click.group()
@click.version_option(__version__, prog_name="edmtools")
@click.option("--verbose", "-v", count=True, help="Log more (-v info, -vv debug)")
def main(verbose: int):
    """edmtools – JPI EDM engine monitor recording decoder."""
    logging.basicConfig(
        level=_LOG_LEVELS[min(verbose, len(_LOG_LEVELS) - 1)],
        format="%(levelname)s %(name)s: %(message)s",
    )


def _format_timestamp(timestamp: Optional[int]) -> str:
    if timestamp is None:
        return "-"
    return unix_to_datetime(timestamp).strftime("%Y-%m-%d %H:%M:%S UTC")


# ── list ──────────────────────────────────────────────────────────────

@main.command("list")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
def list_flights(input_file: str):
    """List the flights in a recording."""
    from edmtools.decoder.edmlog import DecoderConfig, EdmLog

    try:
        jpi_file = EdmLog(input_file).decode(DecoderConfig(headers_only=True))
    except DecodeError as e:
        raise click.ClickException(str(e)) from e

    for flight in jpi_file.flight:
        click.echo(f"Flight number {flight.flight_number:4d} at {_format_timestamp(flight.start_timestamp)}")


# ── info ──────────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
def info(input_file: str):
    """Show unit configuration and the flight directory."""
    from edmtools.decoder.edmlog import EdmLog

    path = Path(input_file)
    try:
        log = EdmLog(path)
    except DecodeError as e:
        raise click.ClickException(str(e)) from e
    metadata = log.metadata
    features = metadata.features

    click.echo(f"File: {path.name}")
    click.echo(f"Model: EDM-{features.model_number}")
    click.echo(f"Firmware: {features.firmware_version}")
    click.echo(f"Build: {features.build_number if features.build_number is not None else '-'}")
    click.echo(f"Protocol: {metadata.protocol_version if metadata.protocol_version is not None else '-'}")
    click.echo(f"Registration: {metadata.registration or '-'}")
    fuel_units = metadata.fuel.fuel_flow_units
    click.echo(f"Fuel flow units: {fuel_units.name if fuel_units is not None else '-'}")
    click.echo(f"Downloaded: {_format_timestamp(metadata.download_timestamp)}")

    click.echo("\nAlarm thresholds:")
    alarms = metadata.alarm_thresholds
    click.echo(f"  volts:          {alarms.min_volts} – {alarms.max_volts}")
    click.echo(f"  EGT:            {alarms.max_exhaust_gas_temperature}")
    click.echo(f"  EGT spread:     {alarms.max_exhaust_gas_temperature_difference}")
    click.echo(f"  CHT:            {alarms.max_cylinder_head_temperature}")
    click.echo(f"  CHT cooling:    {alarms.max_cylinder_head_temperature_cooling_rate}")
    click.echo(f"  oil:            {alarms.min_oil_temperature} – {alarms.max_oil_temperature}")

    click.echo(f"\nFlights ({len(metadata.flight_metadata)}):")
    for entry in metadata.flight_metadata:
        click.echo(f"  {entry.flight_number:4d}  {entry.flight_data_length_words * 2} bytes")

    if metadata.parse_warning:
        click.echo("\nWarnings:")
        for warning in metadata.parse_warning:
            click.echo(f"  {warning}")


# ── decode ────────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--flight", "-f", "flight_number", default=None, type=int, help="Flight number to decode (default: all)")
@click.option("--output", "-o", default=None, type=click.Path(), help="Output CSV path (default: <input>.<flight>.csv)")
def decode(input_file: str, flight_number: Optional[int], output: Optional[str]):
    """Decode flights of a recording to CSV."""
    from edmtools.decoder.edmlog import DecoderConfig, EdmLog, flight_to_dataframe

    path = Path(input_file)
    config = DecoderConfig() if flight_number is None else DecoderConfig.for_flight(flight_number)
    try:
        jpi_file = EdmLog(path).decode(config)
    except DecodeError as e:
        raise click.ClickException(str(e)) from e

    if flight_number is not None and not jpi_file.flight:
        click.echo(f"Flight number {flight_number} not found.")
        return

    for flight in jpi_file.flight:
        df = flight_to_dataframe(flight)
        if output and len(jpi_file.flight) == 1:
            out_path = Path(output)
        else:
            out_path = path.with_suffix(f".{flight.flight_number}.csv")

        df.to_csv(out_path, index=False)
        click.echo(f"Flight {flight.flight_number}: {out_path} ({len(df)} records)")
        for warning in flight.parse_warning:
            click.echo(f"  warning: {warning}")


# ── rewrite ───────────────────────────────────────────────────────────

@main.command("rewrite")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("output_file", type=click.Path(dir_okay=False))
@click.option("--start", "start_flight", default=None, type=int, help="First flight number to keep (default: first)")
@click.option("--end", "end_flight", default=None, type=int, help="Last flight number to keep (default: last)")
@click.option("--reg", "registration", default=None, help="Replacement aircraft registration")
def rewrite_command(input_file: str, output_file: str, start_flight: Optional[int],
                    end_flight: Optional[int], registration: Optional[str]):
    """Copy a range of flights into a new recording."""
    from edmtools.decoder.rewrite import rewrite

    data = Path(input_file).read_bytes()
    try:
        result = rewrite(data, start_flight, end_flight, registration)
    except KeyError as e:
        raise click.ClickException(str(e.args[0])) from e
    except UnicodeEncodeError as e:
        raise click.ClickException(f"Registration {registration!r} is not Latin-1 text") from e
    except DecodeError as e:
        raise click.ClickException(str(e)) from e

    Path(output_file).write_bytes(result)
    click.echo(f"Read {input_file} and wrote {output_file} ({len(result)} bytes)")


if __name__ == "__main__":
    main()
