import argparse
import yaml
from typing import Any, Dict, List, Optional
from .config import SamlCredsConfig
from .enums import RememberRole


def load_yaml_config(path: Optional[str]) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file, or None to skip

    Returns:
        Dictionary containing the loaded configuration, or empty dict if file not found
    """
    if not path:
        return {}
    try:
        with open(path, 'r') as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"Config file '{path}' not found. Continuing without it.")
        return {}


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments for the samlcreds tool.

    Args:
        argv: Argument list, defaults to sys.argv[1:]

    Returns:
        Parsed command line arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="samlcreds",
        description="samlcreds - assume an AWS role through SAML.to and keep the credentials fresh"
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to config YAML'
    )

    # Role (overrides YAML if provided)
    parser.add_argument(
        '--role',
        type=str,
        help='Role ARN to assume (prompts for a role when omitted)'
    )
    parser.add_argument(
        '--org',
        type=str,
        help='Organization that grants the role'
    )
    parser.add_argument(
        '--provider',
        type=str,
        help='Identity provider name within the organization'
    )

    # Profile options
    parser.add_argument(
        '--region',
        type=str,
        help='AWS region written to the profile (default us-east-1)'
    )
    parser.add_argument(
        '--profile-name',
        dest='profile_name',
        type=str,
        help="Profile naming policy: 'Default Profile', 'Role ARN', 'Role Name', 'Account ID', 'None' or a literal name"
    )
    parser.add_argument(
        '--no-auto-refresh',
        dest='auto_refresh',
        action='store_false',
        default=argparse.SUPPRESS,
        help='Do not refresh credentials before they expire'
    )
    parser.add_argument(
        '--remember-role',
        dest='remember_role',
        choices=[r.value for r in RememberRole],
        help='Where to remember the last assumed role'
    )

    # Identity provider options
    parser.add_argument(
        '--dev',
        action='store_true',
        default=argparse.SUPPRESS,
        help='Use the non-live identity provider'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def merge_configs(yaml_config: Dict[str, Any], cli_args: argparse.Namespace) -> SamlCredsConfig:
    """
    Merge YAML configuration with CLI arguments and validate the result.

    Args:
        yaml_config: Configuration loaded from YAML file
        cli_args: Parsed command line arguments

    Returns:
        Validated SamlCredsConfig object

    Raises:
        ValueError: If configuration validation fails
        TypeError: If configuration has type errors
    """
    # Start with YAML
    merged = yaml_config.copy()

    # Apply CLI overrides (only if CLI provided them)
    cli_dict = {
        k: v for k, v in vars(cli_args).items()
        if k in SamlCredsConfig.model_fields and v is not None
    }
    merged.update(cli_dict)

    # Validate and return final config (will raise if wrong types)
    return SamlCredsConfig(**merged)
