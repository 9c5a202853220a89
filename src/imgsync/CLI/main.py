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
Command Line Interface for imgsync.
"""
import logging
import os

import click
from dotenv import load_dotenv

from ..MODELS.image_configuration import PullPolicy, SyncConfig
from ..PARSERS.sync_config_parser import SyncConfigParser
from ..REGISTRY.auth import ConfiguredRegistryContext
from ..REGISTRY.docker_access import DockerCliAccess
from ..REGISTRY.pull_cache import create_pull_cache
from ..REGISTRY.registry_service import RegistrySyncService
from ..exceptions import ImgSyncError


def create_docker_access():
    """
    Creates the image runtime used by the commands.
    """
    return DockerCliAccess()


@click.group()
@click.option('--file', '-f', default='imgsync.yml', help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, file, verbose):
    """
    imgsync - synchronize container images with registries.

    Pushes images with all their tags and pulls images according to a pull policy.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(os.path.join(os.getcwd(), '.env'), override=False)

    ctx.ensure_object(dict)
    ctx.obj['file'] = file
    try:
        if os.path.exists(file):
            ctx.obj['config'] = SyncConfigParser().parse(file)
        else:
            ctx.obj['config'] = SyncConfig()
    except ImgSyncError as e:
        raise click.ClickException(str(e))

    config = ctx.obj['config']
    ctx.obj['service'] = RegistrySyncService(
        create_docker_access(), create_pull_cache(config.pull_cache))
    ctx.obj['context'] = ConfiguredRegistryContext(config)


@cli.command()
@click.argument('images', nargs=-1)
@click.option('--retries', '-r', type=int, default=None, help='Retries per push')
@click.option('--skip-tag', is_flag=True, help='Do not push additional tags')
@click.pass_context
def push(ctx, images, retries, skip_tag):
    """Push configured images and their tags."""
    config = ctx.obj['config']
    service = ctx.obj['service']

    if images:
        selected = []
        for name in images:
            image = config.find_image(name)
            if image is None:
                raise click.ClickException(f"{name} is not configured in {ctx.obj['file']}")
            selected.append(image)
    else:
        selected = list(config.images)
    if not selected:
        raise click.ClickException(f"No images configured in {ctx.obj['file']}")

    retries = config.retries if retries is None else retries
    skip_tag = skip_tag or config.skip_tag
    for image in selected:
        try:
            pushed = service.push_image(image, retries, skip_tag, ctx.obj['context'])
        except ImgSyncError as e:
            raise click.ClickException(str(e))
        for name in pushed:
            click.echo(f"Pushed {name}")


@cli.command()
@click.argument('images', nargs=-1)
@click.option('--policy', '-p',
              type=click.Choice([p.value for p in PullPolicy] + ["IfAbsent"], case_sensitive=False),
              default=None, help='Pull policy (defaults to the configured one)')
@click.pass_context
def pull(ctx, images, policy):
    """Pull images unless the pull policy says otherwise."""
    config = ctx.obj['config']
    service = ctx.obj['service']

    names = list(images) or [image.name for image in config.images]
    if not names:
        raise click.ClickException("No images given")

    pull_policy = PullPolicy(policy) if policy else config.pull_policy
    for name in names:
        try:
            outcome = service.pull_image(name, pull_policy, ctx.obj['context'])
        except ImgSyncError as e:
            raise click.ClickException(str(e))
        click.echo(f"{name}: {outcome.value}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})

if __name__ == '__main__':
    main()
