# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Command Line Interface for composehooks.
"""
import logging
import os
import sys
import time

import click

from ..errors import ComposeHooksError
from ..MANAGERS.hook_dispatcher import Hook
from ..MODELS.lifecycle import HOOKABLE_STATES, LifecycleState
from ..PARSERS.compose_parser import ComposeParser
from ..PARSERS.hook_declarations import builder_from_compose_file
from ..RUNNERS.local_engine import LocalComposeEngine


def setup_logging(verbose: bool, quiet: bool) -> None:
    """Configure logging based on verbosity flags."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr, force=True)
    elif quiet:
        logging.basicConfig(level=logging.ERROR, stream=sys.stderr, force=True)
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr, force=True)


@click.group()
@click.option('--file', '-f', default='docker-compose.yml', help='Compose file path')
@click.option('--verbose', '-v', is_flag=True, help='Log every probe attempt')
@click.option('--quiet', '-q', is_flag=True, help='Only log errors')
@click.pass_context
def cli(ctx, file, verbose, quiet):
    """
    composehooks - run a compose file with lifecycle hooks.

    Hooks are declared per service in an `x-hooks` block of the compose file.
    """
    setup_logging(verbose, quiet)
    ctx.ensure_object(dict)
    ctx.obj['file'] = file
    if os.path.exists(file):
        try:
            document = ComposeParser().parse(file)
            builder = builder_from_compose_file(file, document)
        except ComposeHooksError as e:
            click.echo(f"Error: {e}")
            ctx.exit(1)
        ctx.obj['document'] = document
        ctx.obj['builder'] = builder


@cli.command()
@click.pass_context
def plan(ctx):
    """Show the hooks that fire on each lifecycle state."""
    builder = ctx.obj.get('builder')
    if not builder:
        click.echo(f"Error: {ctx.obj['file']} not found.")
        return

    service = builder.build(LocalComposeEngine(builder.config, ctx.obj['document']))
    click.echo(f"{'STATE':10} {'SERVICE':15} HOOK")
    click.echo("-" * 40)
    for state in LifecycleState:
        if state not in HOOKABLE_STATES:
            continue
        for hook in service.dispatcher.hooks(state):
            if isinstance(hook, Hook):
                click.echo(f"{state.value:10} {hook.service:15} {hook.describe()}")


@cli.command()
@click.option('--once', is_flag=True, help='Tear down as soon as the services are running')
@click.pass_context
def up(ctx, once):
    """Start services, firing their hooks, and remove them on Ctrl+C."""
    builder = ctx.obj.get('builder')
    if not builder:
        click.echo(f"Error: {ctx.obj['file']} not found.")
        return

    service = builder.build(LocalComposeEngine(builder.config, ctx.obj['document']))
    try:
        service.start()
        click.echo("Services started.")
        if not once:
            click.echo("Running... Press Ctrl+C to stop.")
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\nStopping services...")
    except (ComposeHooksError, OSError) as e:
        click.echo(f"Error: {e}")
        _dispose(service)
        ctx.exit(1)

    if not _dispose(service):
        ctx.exit(1)
    click.echo("Services removed.")


def _dispose(service) -> bool:
    try:
        service.dispose()
        return True
    except (ComposeHooksError, OSError) as e:
        click.echo(f"Error: {e}")
        return False


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
