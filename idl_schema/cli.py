#!/usr/bin/env python3

"""Command line interface for compiling IDLs and decoding account/instruction data."""

import base64
import binascii
import json
import logging

import base58
import click

from . import __version__
from .config import ENCODINGS, load_config
from .errors import IdlSchemaError
from .on_chain_idl import OnChainIdl
from .parse_idl import parse_idl

logger = logging.getLogger(__name__)


def decode_input(data: str, encoding: str) -> bytes:
    """Turn a command line byte argument into raw bytes."""
    try:
        if encoding == 'hex':
            if data.startswith('0x'):
                data = data[2:]
            return bytes.fromhex(data)
        if encoding == 'base58':
            return base58.b58decode(data)
        return base64.b64decode(data, validate=True)
    except (ValueError, binascii.Error) as e:
        raise click.BadParameter(f"not valid {encoding}: {e}") from e


def load_idl(path: str) -> OnChainIdl:
    """Load a JSON IDL, or a program index previously written by `compile`."""
    with open(path, 'rb') as f:
        raw = f.read()
    try:
        text = raw.decode('utf-8')
        json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.info(f"loading compiled program index from {path}")
        return OnChainIdl.from_bytes(raw)
    logger.info(f"compiling IDL {path}")
    return parse_idl(text)


def emit(ctx, document):
    click.echo(json.dumps(document, indent=ctx.obj['config']['indent']))


@click.group()
@click.version_option(version=__version__)
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), default=None,
              help='YAML config file (defaults to $IDL_SCHEMA_CONFIG)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.pass_context
def main(ctx, config_path, verbose):
    """Decode borsh account and instruction data using an IDL."""
    try:
        config = load_config(config_path)
    except IdlSchemaError as e:
        raise click.ClickException(str(e))

    logging.basicConfig(
        level=logging.DEBUG if verbose else config['log_level'],
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@main.command('compile')
@click.argument('idl_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), required=True,
              help='Where to write the compiled program index')
def compile_idl(idl_path, output):
    """Compile a JSON IDL into its binary program index."""
    try:
        idl = load_idl(idl_path)
    except IdlSchemaError as e:
        raise click.ClickException(str(e))

    data = idl.to_bytes()
    with open(output, 'wb') as f:
        f.write(data)
    logger.info(f"wrote {len(data)} bytes to {output}")
    click.echo(f"Compiled `{idl.program_name}`: {len(idl.accounts)} accounts, "
               f"{len(idl.instruction_params)} instructions")


@main.command('schema')
@click.argument('idl_path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def show_schema(ctx, idl_path):
    """Print the schemas of every account and instruction."""
    try:
        idl = load_idl(idl_path)
    except IdlSchemaError as e:
        raise click.ClickException(str(e))
    emit(ctx, idl.schemas_to_json())


@main.command('decode-account')
@click.argument('idl_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('data')
@click.option('--show-hidden/--hide-hidden', default=None, help='Include hidden fields')
@click.option('--encoding', '-e', type=click.Choice(ENCODINGS), default=None, help='Encoding of DATA')
@click.pass_context
def decode_account(ctx, idl_path, data, show_hidden, encoding):
    """Decode account DATA against the account schemas of an IDL."""
    config = ctx.obj['config']
    raw = decode_input(data, encoding or config['encoding'])
    if show_hidden is None:
        show_hidden = config['show_hidden']

    try:
        idl = load_idl(idl_path)
        result = idl.decode_account(raw, show_hidden)
    except IdlSchemaError as e:
        raise click.ClickException(str(e))
    emit(ctx, result.to_json())


@main.command('decode-instruction')
@click.argument('idl_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('data')
@click.argument('accounts', nargs=-1)
@click.option('--show-hidden/--hide-hidden', default=None, help='Include hidden fields')
@click.option('--encoding', '-e', type=click.Choice(ENCODINGS), default=None, help='Encoding of DATA')
@click.pass_context
def decode_instruction(ctx, idl_path, data, accounts, show_hidden, encoding):
    """Decode instruction DATA; ACCOUNTS are the instruction's account addresses."""
    config = ctx.obj['config']
    raw = decode_input(data, encoding or config['encoding'])
    if show_hidden is None:
        show_hidden = config['show_hidden']

    try:
        idl = load_idl(idl_path)
        result = idl.decode_instruction(raw, list(accounts), show_hidden)
    except IdlSchemaError as e:
        raise click.ClickException(str(e))
    emit(ctx, result.to_json())


if __name__ == '__main__':
    main()
