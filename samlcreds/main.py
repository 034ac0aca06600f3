import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from pydantic import ValidationError

from .app import SamlCredsApp
from .config import SamlCredsConfig
from .output import OutputHandler
from .usage import load_yaml_config, parse_cli_args, merge_configs

logger = logging.getLogger(__name__)


def setup_logging(debug: bool) -> None:
    """Configure root logging once for the CLI."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # botocore is very chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def setup_configuration(cli_args: argparse.Namespace, yaml_config: Dict) -> SamlCredsConfig:
    """
    Merge and validate configuration from YAML and CLI arguments.

    Args:
        cli_args: Parsed command line arguments
        yaml_config: Configuration loaded from YAML file

    Returns:
        Validated SamlCredsConfig object

    Raises:
        SystemExit: If configuration validation fails
    """
    try:
        final_config = merge_configs(yaml_config, cli_args)
    except (ValidationError, ValueError, TypeError) as e:
        OutputHandler.error("Configuration Error", e)
        sys.exit(1)

    logger.debug(f"Final config: {final_config.model_dump(exclude={'github_token', 'api_key'})}")

    return final_config


def wait_for_refresh(app: SamlCredsApp) -> None:
    """
    Keep the process alive while a refresh is pending.

    Ctrl-C stops the refresh and returns.
    """
    if not app.scheduler.is_armed:
        return
    OutputHandler.info("Keeping credentials fresh. Press Ctrl-C to stop.")
    try:
        while not app.scheduler.wait(timeout=1):
            pass
    except KeyboardInterrupt:
        app.stop_refresh()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for samlcreds."""
    cli_args = parse_cli_args(argv)
    setup_logging(cli_args.debug)
    yaml_config = load_yaml_config(cli_args.config)

    final_config = setup_configuration(cli_args, yaml_config)

    app = SamlCredsApp(final_config)
    credentials = app.activate(cli_args.role, cli_args.org, cli_args.provider)

    if credentials is not None and not final_config.persists_profile:
        # No profile to write to: hand the credentials over in credential_process format
        print(json.dumps(credentials.to_credential_process(), indent=2))

    wait_for_refresh(app)


if __name__ == "__main__":
    main()
