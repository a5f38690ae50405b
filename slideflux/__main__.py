"""CLI entry point for slideflux.

Usage:
    python -m slideflux generate --title "Q3 Revenue Up 23%" --archetype kpi_dashboard --quick
    python -m slideflux generate --content slide.json --archetype executive_summary
    python -m slideflux config check
    python -m slideflux env
"""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from slideflux.catalog import list_archetypes
from slideflux.config import EnvVar, get_environment, list_environment_variables, mask_secret
from slideflux.content import DensityMode, StructuredContent, TargetAudience
from slideflux.core import get_logger, setup_logging
from slideflux.prompt import SlideStyle

logger = get_logger("cli")


# =============================================================================
# Generate Command
# =============================================================================


def _load_content(path: Path) -> StructuredContent | None:
    try:
        return StructuredContent.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        logger.error(f"Cannot read content file {path}: {e}")
    except ValidationError as e:
        logger.error(f"Invalid content in {path}:\n{e}")
    return None


def _result_summary(outcome) -> dict:
    """JSON-friendly view of a PipelineResult."""
    if not outcome.success:
        return {"success": False, "error": outcome.error, "error_code": outcome.error_code}
    result = outcome.result
    return {
        "success": True,
        "slide_id": result.slide_id,
        "image_url": result.image_url,
        "model_used": result.model_used,
        "archetype_id": result.archetype_id.value,
        "seed": result.seed,
        "attempts": result.attempts,
        "generation_time_ms": result.generation_time_ms,
    }


def cmd_generate(args: argparse.Namespace) -> int:
    """Handle the generate command."""
    from slideflux.generation import SlideImagePipeline
    from slideflux.providers import ConfigOverride

    if args.content is None and not args.title:
        logger.error("Either --content or --title is required")
        return 1

    content = None
    if args.content is not None:
        content = _load_content(args.content)
        if content is None:
            return 1
        if args.title:
            content = content.model_copy(update={"title": args.title})

    pipeline = SlideImagePipeline()
    override = ConfigOverride(
        provider=args.provider, api_key=args.api_key, model=args.model, base_url=args.base_url
    )

    if args.dry_run:
        if content is None:
            prompt = pipeline.builder.build_quick(args.title, args.archetype, args.style or "mckinsey")
        else:
            prompt = pipeline.build_prompt(
                content, args.archetype, args.audience, args.density, args.style or "mckinsey"
            )
        print(prompt.prompt)
        print(f"\nNegative prompt: {prompt.negative_prompt}")
        print(f"Guidance: {prompt.guidance_scale}, steps: {prompt.num_inference_steps}")
        return 0

    if content is None or args.quick:
        title = args.title or content.headline
        outcomes = [
            pipeline.quick_generate(
                title, args.archetype, args.style or "mckinsey", config_override=override
            )
        ]
    elif args.variations > 1:
        outcomes = pipeline.run_variations(
            content,
            args.archetype,
            count=args.variations,
            audience=args.audience,
            density=args.density,
            style=args.style,
            config_override=override,
        )
    else:
        outcomes = [
            pipeline.run(
                content,
                args.archetype,
                args.audience,
                args.density,
                args.style,
                config_override=override,
            )
        ]

    summaries = [_result_summary(o) for o in outcomes]
    text = json.dumps(summaries if len(summaries) > 1 else summaries[0], indent=2)
    if args.output:
        args.output.write_text(text + "\n", encoding="utf-8")
        logger.info(f"Result saved to {args.output}")
    else:
        print(text)

    for outcome in outcomes:
        if not outcome.success:
            logger.error(outcome.error)
    return 0 if all(o.success for o in outcomes) else 1


def cmd_archetypes(_args: argparse.Namespace) -> int:
    """Handle the archetypes command."""
    from slideflux.catalog import get_visual_config

    for archetype in list_archetypes():
        print(f"  {archetype.value:<36} {get_visual_config(archetype).visual_style[:60]}")
    return 0


def handle_generate_command(argv: list[str]) -> int:
    """Handle generate-specific arguments."""
    parser = argparse.ArgumentParser(
        prog="python -m slideflux generate",
        description="Generate a consulting slide image with Flux",
    )
    source = parser.add_argument_group("content")
    source.add_argument(
        "--content",
        "-c",
        type=Path,
        default=None,
        help="StructuredContent JSON file (camelCase or snake_case keys)",
    )
    source.add_argument(
        "--title",
        "-t",
        type=str,
        default=None,
        help="Slide title (quick generation when no content file is given)",
    )
    parser.add_argument(
        "--archetype",
        "-a",
        type=str,
        required=True,
        choices=[a.value for a in list_archetypes()],
        metavar="ARCHETYPE",
        help="Slide archetype (see 'archetypes' command)",
    )
    parser.add_argument(
        "--audience",
        type=str,
        default=TargetAudience.C_SUITE.value,
        choices=[a.value for a in TargetAudience],
        help="Target audience (default: c_suite)",
    )
    parser.add_argument(
        "--density",
        type=str,
        default=DensityMode.PRESENTATION.value,
        choices=[d.value for d in DensityMode],
        help="Density mode (default: presentation)",
    )
    parser.add_argument(
        "--style",
        "-s",
        type=str,
        default=None,
        choices=[s.value for s in SlideStyle],
        help="House style (default: mckinsey)",
    )
    parser.add_argument("--quick", action="store_true", help="Short prompt from the title only")
    parser.add_argument(
        "--variations",
        "-n",
        type=int,
        default=1,
        help="Number of variations to generate concurrently (default: 1)",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Print the prompt without generating"
    )
    provider = parser.add_argument_group("provider (overrides FLUX_* variables)")
    provider.add_argument("--provider", "-p", type=str, default=None, help="replicate, fal, together, bfl")
    provider.add_argument("--api-key", "-k", type=str, default=None, help="Provider API key")
    provider.add_argument("--model", "-m", type=str, default=None, help="Model identifier")
    provider.add_argument("--base-url", type=str, default=None, help="Endpoint URL")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the JSON result here (prints to stdout if not specified)",
    )

    args = parser.parse_args(argv)
    return cmd_generate(args)


# =============================================================================
# Config Command
# =============================================================================


def cmd_config_check(_args: argparse.Namespace) -> int:
    """Validate the provider configuration from the environment."""
    from slideflux.providers import resolve_provider_config, validate_provider_config

    config = resolve_provider_config()
    validation = validate_provider_config(config)

    print("Flux provider configuration")
    print("=" * 40)
    print(f"Provider: {config.provider}")
    print(f"Model:    {config.model or '<none>'}")
    print(f"Endpoint: {config.base_url or '<none>'}")
    print(f"API key:  {config.masked_api_key}")
    if validation.docs_url:
        print(f"Docs:     {validation.docs_url}")

    for error in validation.errors:
        print(f"  ERROR:   {error}")
    for warning in validation.warnings:
        print(f"  WARNING: {warning}")

    print(f"\nStatus: {'valid' if validation.valid else 'invalid'}")
    return 0 if validation.valid else 1


def cmd_config_help(_args: argparse.Namespace) -> int:
    """Print setup instructions for every provider."""
    from slideflux.providers import get_config_help

    print(get_config_help())
    return 0


def handle_config_command(argv: list[str]) -> int:
    """Handle config subcommands."""
    parser = argparse.ArgumentParser(
        prog="python -m slideflux config",
        description="Check or explain provider configuration",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.add_parser("check", help="Validate current configuration").set_defaults(
        func=cmd_config_check
    )
    subparsers.add_parser("help", help="Show setup instructions").set_defaults(
        func=cmd_config_help
    )

    args = parser.parse_args(argv or ["check"])
    return args.func(args)


# =============================================================================
# Env Command
# =============================================================================


def cmd_env(argv: list[str]) -> int:
    """List environment variables with their current values."""
    parser = argparse.ArgumentParser(
        prog="python -m slideflux env",
        description="Show slideflux environment variables",
    )
    parser.add_argument(
        "--category",
        type=str,
        default=None,
        choices=["provider", "runtime"],
        help="Only show one category",
    )
    args = parser.parse_args(argv)

    for var in list_environment_variables(args.category):
        info = var.value
        value = get_environment(var)
        if info.secret:
            shown = mask_secret(value)
        else:
            shown = "<unset>" if value is None else str(value)
        print(f"{info.name:<22} {shown:<40} {info.description}")
    return 0


# =============================================================================
# Main
# =============================================================================


def show_help() -> None:
    """Display CLI help message."""
    print("Usage: python -m slideflux {command} [args]")
    print("\nCommands:")
    print("  generate     Generate a slide image")
    print("  archetypes   List slide archetypes")
    print("  config       Check provider configuration (check, help)")
    print("  env          Show environment variables")
    print("\nExamples:")
    print('  python -m slideflux generate -t "Q3 Revenue Up 23%" -a kpi_dashboard --quick')
    print("  python -m slideflux generate -c slide.json -a executive_summary -n 3")
    print("  python -m slideflux generate -c slide.json -a trend_line --dry-run")
    print("  python -m slideflux config check")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        show_help()
        return 1

    command, rest_args = argv[0], argv[1:]
    if command in ("-h", "--help"):
        show_help()
        return 0

    commands = {
        "generate": lambda: handle_generate_command(rest_args),
        "archetypes": lambda: cmd_archetypes(argparse.Namespace()),
        "config": lambda: handle_config_command(rest_args),
        "env": lambda: cmd_env(rest_args),
    }

    if command in commands:
        load_dotenv()
        setup_logging(get_environment(EnvVar.SLIDEFLUX_LOG_LEVEL))
        return commands[command]()

    logger.error(f"Unknown command: {command}")
    show_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
