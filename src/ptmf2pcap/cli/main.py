"""
ptmf2pcap CLI - main entry point.
"""
import logging
import os
import sys

# Ensure src is in path when running directly
if __name__ == "__main__":
    current_dir = os.path.dirname(os.path.abspath(__file__))
    src_root = os.path.dirname(os.path.dirname(current_dir))
    if src_root not in sys.path:
        sys.path.insert(0, src_root)

import click

from ptmf2pcap import __version__
from ptmf2pcap.converter import convert_batch, count_errors, plan_directory
from ptmf2pcap.logging_config import setup_logger
from ptmf2pcap.models.config import ConversionConfig
from ptmf2pcap.models.result import ConversionResult

BANNER = f"ptmf2pcap.v{__version__}"
DOUBLE_RULE = "=" * 64
SINGLE_RULE = "-" * 64


def usage_text() -> str:
    return "\r\n".join([
        f"{BANNER}:",
        "",
        "Usage 1 (converts the input PTMF file into the output PCAP file):",
        "",
        "    ptmf2pcap -f <input_file> <output_file>",
        "",
        "Usage 2 (converts the PTMF files from the input directory into PCAP files in the output directory):",
        "",
        "    ptmf2pcap -d <input_directory> <output_directory>",
        "",
        "With no arguments the current directory is used as both input and output directory.",
        "Add --debug for debug logging and a <input>.hex.txt dump of every input file.",
    ])


class UsageOnErrorCommand(click.Command):
    """Prints the usage text and exits with status 1 on any argument error."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError:
            click.echo(usage_text())
            ctx.exit(1)


@click.command(cls=UsageOnErrorCommand, context_settings={"help_option_names": []})
@click.option("-f", "file_paths", nargs=2, type=str, default=None,
              help="Convert <input_file> into <output_file>")
@click.option("-d", "dir_paths", nargs=2, type=str, default=None,
              help="Convert every .ptmf file of <input_directory> into <output_directory>")
@click.option("-h", "show_help", is_flag=True, help="Show usage and exit")
@click.option("--debug", is_flag=True, help="Debug logging and hex dump of the input files")
@click.pass_context
def cli(ctx, file_paths, dir_paths, show_help, debug):
    """Convert PTMF trace files into PCAP files."""
    if show_help or (file_paths and dir_paths):
        click.echo(usage_text())
        ctx.exit(1)

    setup_logger(level=logging.DEBUG if debug else logging.INFO)
    config = ConversionConfig(dump_hex=debug)

    if file_paths:
        input_output_list = [tuple(file_paths)]
    else:
        input_dir, output_dir = dir_paths or (".", ".")
        try:
            input_output_list = plan_directory(input_dir, output_dir, config)
        except OSError as e:
            click.echo(f"ERROR:  Failed to list input directory {input_dir}: {e}", err=True)
            ctx.exit(1)

    def on_start(index: int, input_path: str, output_path: str):
        if index > 0:
            click.echo(SINGLE_RULE)
        click.echo(f"Input:  {input_path}")
        click.echo(f"Output: {output_path}")

    def on_result(result: ConversionResult):
        click.echo(f"Result: {result.result_text}")

    click.echo(BANNER)
    click.echo(DOUBLE_RULE)
    results = convert_batch(input_output_list, config, on_start=on_start, on_result=on_result)
    errors = count_errors(results)
    click.echo(DOUBLE_RULE)
    click.echo(f"Processed {len(results)} files with {errors} errors")
    ctx.exit(errors)


if __name__ == "__main__":
    cli()
