"""Main CLI entry point for aistory."""

import logging
import sys
import time

import click
from dotenv import load_dotenv

from .. import __version__
from ..ai.gemini_client import GeminiClient, GeminiError
from ..core.abstract import AbstractGenerator
from ..core.config import ConfigError, resolve_config
from ..core.story import ChapterFailurePolicy, StoryGenerationError, StoryGenerator
from ..io.abstract_file import AbstractFileError
from ..io.run_log import LOG_FORMAT, run_log, story_log_path


def _make_client(ctx, config):
    factory = ctx.obj.get('client_factory', GeminiClient)
    return factory(config.api_key, dump_dir=ctx.obj.get('dump_dir'))


def _load_config(config_path):
    try:
        return resolve_config(config_path)
    except ConfigError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', is_flag=True, help='Enable debug logging')
@click.option('--dump-dir', type=click.Path(file_okay=False), envvar='AISTORY_DUMP_DIR',
              help='Directory to save raw Gemini request/response bodies for debugging')
@click.pass_context
def cli(ctx, verbose, dump_dir):
    """aistory - generate story abstracts and full stories with Gemini"""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
    ctx.ensure_object(dict)
    ctx.obj['dump_dir'] = dump_dir
    ctx.obj.setdefault('sleep', time.sleep)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='Path to a JSON config file {api_key, model_name, thinking_level}. '
                   'Without it the key comes from GEMINI_API_KEY and the default model is used.')
@click.option('--output', type=click.Path(dir_okay=False),
              help='Where to save the abstract (default: abstract-YYYY-MM-DD-HH-MM-SS.yaml)')
@click.option('--instruction', default='', help='Story instruction or idea (optional)')
@click.option('--language', default='english', show_default=True, help='Output language of the abstract')
@click.option('--chapters', default=0, type=click.IntRange(min=0),
              help='Number of chapters to plan (0 picks a random number between 20 and 40)')
@click.pass_context
def abstract(ctx, config_path, output, instruction, language, chapters):
    """Generate a story abstract (chaptered plan)"""
    config = _load_config(config_path)

    try:
        generator = AbstractGenerator(_make_client(ctx, config), config)
        outcome = generator.run(instruction, language, chapters, output)
    except (GeminiError, AbstractFileError, ValueError) as e:
        click.echo(f"❌ Error generating abstract: {e}", err=True)
        sys.exit(1)

    click.echo(f"✅ Abstract successfully generated and saved to: {outcome.output_path}")
    if outcome.chapter_count is not None:
        click.echo(f"📚 Pure chapter count: {outcome.chapter_count}")
    else:
        click.echo(f"⚠️  Could not determine chapter count: {outcome.chapter_count_error}", err=True)
    click.echo(f"💰 Total accumulated cost for abstract generation: ${outcome.usage.cost:.6f}")


@cli.command()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='Path to a JSON config file {api_key, model_name, thinking_level}')
@click.option('--abstract', 'abstract_path', required=True, type=click.Path(dir_okay=False),
              help='Abstract file (yaml, json or plain text) from the abstract command')
@click.option('--words-per-chapter', default=5000, show_default=True, type=click.IntRange(min=1),
              help='Desired average number of words per chapter')
@click.option('--output', type=click.Path(dir_okay=False),
              help='Story output file (default: fulltext-*.txt derived from the abstract filename)')
@click.option('--on-failure', type=click.Choice([p.value for p in ChapterFailurePolicy]),
              default=ChapterFailurePolicy.ABORT.value, show_default=True,
              help='Abort the run, or write a placeholder and continue, when a chapter keeps failing')
@click.option('--log-file/--no-log-file', default=True, show_default=True,
              help='Also write this run\'s log to a file beside the abstract')
@click.pass_context
def story(ctx, config_path, abstract_path, words_per_chapter, output, on_failure, log_file):
    """Generate a full story from an abstract, chapter by chapter"""
    log_path = story_log_path(abstract_path) if log_file else None

    with run_log(log_path) as run_logger:
        config = _load_config(config_path)
        try:
            generator = StoryGenerator(
                _make_client(ctx, config),
                config,
                words_per_chapter=words_per_chapter,
                failure_policy=ChapterFailurePolicy(on_failure),
                sleep=ctx.obj['sleep'],
                log=run_logger,
            )
            outcome = generator.run(abstract_path, output)
        except (StoryGenerationError, GeminiError, AbstractFileError) as e:
            run_logger.error(f"Story generation failed: {e}")
            click.echo(f"❌ Error generating story: {e}", err=True)
            sys.exit(1)

    click.echo(f"✅ Full story successfully generated and saved to: {outcome.output_path}")
    click.echo(f"📚 Chapters: {outcome.total_chapters} planned, {outcome.chapters_written} written this run")
    if outcome.failed_chapters:
        failed = ", ".join(str(n) for n in outcome.failed_chapters)
        click.echo(f"⚠️  Placeholder written for chapter(s): {failed}", err=True)
    click.echo(f"💰 Total accumulated cost for full story generation: ${outcome.usage.cost:.6f}")


@cli.command()
@click.option('--host', default='127.0.0.1', show_default=True)
@click.option('--port', default=8000, show_default=True, type=int)
def webui(host, port):
    """Serve the paragraph-by-paragraph story page locally"""
    from ..webui.server import run_server

    click.echo(f"🌐 Serving the story page at http://{host}:{port} (Ctrl+C to stop)")
    try:
        run_server(host, port)
    except KeyboardInterrupt:
        click.echo("\n👋 Stopped")
    except OSError as e:
        click.echo(f"❌ Could not start server: {e}", err=True)
        sys.exit(1)


@cli.command(name='help')
@click.pass_context
def help_command(ctx):
    """Show usage for all commands"""
    click.echo(ctx.parent.get_help())
    click.echo("\nRun 'aistory abstract --help' or 'aistory story --help' for command options.")


def main():
    """Main entry point for the CLI"""
    load_dotenv()
    cli()


if __name__ == '__main__':
    main()
