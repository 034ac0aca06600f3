"""
AWS CLI config/credentials file persistence.

Writes one profile at a time into the two INI documents the AWS CLI reads:
the config file holds the region under [profile <name>] (or [default]) and
the credentials file holds the key triple under [<name>].

Only the target section is rewritten. Every other section, comment and blank
line in either file is kept exactly as it was on disk.
"""

import configparser
import logging
import os
import re
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .constants import (
    AWS_CONFIG_FILE_ENV,
    AWS_CONFIG_FILENAME,
    AWS_CREDENTIALS_FILENAME,
    AWS_DIR_NAME,
    AWS_SHARED_CREDENTIALS_FILE_ENV,
    DEFAULT_PROFILE_NAME,
    PROFILE_SECTION_PREFIX,
)
from .errors import CredentialStoreError

logger = logging.getLogger(__name__)

# Same header rule as configparser: trailing text after the closing bracket is allowed
SECTION_HEADER_PATTERN = re.compile(r"\[(?P<header>.+)\]")
LINE_PATTERN = re.compile(r"[^\n]*\n|[^\n]+")
CONTINUATION_INDENT = "    "
COMMENT_PREFIXES = ("#", ";")

# Keeps configparser from treating a [DEFAULT] section specially
UNUSED_DEFAULT_SECTION = "__samlcreds_default__"

Block = Tuple[Optional[str], List[str]]


@dataclass
class ProfileCredentials:
    """Values written for a single profile."""
    region: str
    access_key_id: str
    secret_access_key: str
    session_token: str


def config_section_name(profile: str) -> str:
    """Section header for a profile in the config file."""
    if profile == DEFAULT_PROFILE_NAME:
        return DEFAULT_PROFILE_NAME
    return f"{PROFILE_SECTION_PREFIX}{profile}"


def _newline(text: str) -> str:
    """Line ending used by a document, so rewritten lines match the rest of the file."""
    return "\r\n" if "\r\n" in text else "\n"


def _split_sections(text: str) -> List[Block]:
    """
    Split an INI document into raw blocks.

    The first block holds anything before the first header and has no name.
    Each following block starts with its header line and runs until the next
    header.
    """
    blocks: List[Block] = [(None, [])]
    for line in LINE_PATTERN.findall(text):
        match = None
        if line[:1] not in (" ", "\t"):
            match = SECTION_HEADER_PATTERN.match(line.strip())
        if match:
            blocks.append((match.group("header"), [line]))
        else:
            blocks[-1][1].append(line)
    return blocks


def _trailing_filler(lines: List[str]) -> List[str]:
    """Blank and comment lines at the end of a block, kept as separators."""
    filler: List[str] = []
    for line in reversed(lines[1:]):
        stripped = line.strip()
        if stripped and not stripped.startswith(COMMENT_PREFIXES):
            break
        filler.insert(0, line)
    return filler


def _render_value(value: str, newline: str) -> str:
    first, *rest = value.split("\n")
    return newline.join([first] + [f"{CONTINUATION_INDENT}{line}" if line else "" for line in rest])


def _render_options(values: Dict[str, str], newline: str) -> List[str]:
    return [f"{key} = {_render_value(value, newline)}{newline}" for key, value in values.items()]


def _parse(text: str, path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None,
        inline_comment_prefixes=(),
        default_section=UNUSED_DEFAULT_SECTION,
    )
    try:
        parser.read_string(text, source=str(path))
    except configparser.Error as e:
        raise CredentialStoreError(f"Unable to parse {path}: {e}") from e
    return parser


def merge_section(text: str, path: Path, header: str, values: Dict[str, str]) -> str:
    """
    Merge values into one section of an INI document.

    Keys already present in the section and not in values are kept. If the
    section does not exist it is appended at the end of the document.

    Args:
        text: Current document text (empty for a missing file)
        path: Path of the document, for error messages
        header: Section header without brackets
        values: Keys to set in the section

    Returns:
        The new document text

    Raises:
        CredentialStoreError: If the existing document cannot be parsed
    """
    parser = _parse(text, path)
    merged: Dict[str, str] = {}
    if parser.has_section(header):
        merged.update(parser.items(header, raw=True))
    merged.update(values)

    newline = _newline(text)
    blocks = _split_sections(text)
    if [name for name, _ in blocks[1:]] != parser.sections():
        raise CredentialStoreError(f"Unable to locate the sections of {path} for an in-place update")

    for index, (name, lines) in enumerate(blocks):
        if name == header:
            header_line = lines[0] if lines[0].endswith("\n") else lines[0] + newline
            blocks[index] = (name, [header_line] + _render_options(merged, newline) + _trailing_filler(lines))
            return "".join("".join(block_lines) for _, block_lines in blocks)

    prefix = text
    if prefix and not prefix.endswith("\n"):
        prefix += newline
    if prefix.strip():
        prefix += newline
    return prefix + f"[{header}]{newline}" + "".join(_render_options(merged, newline))


def _read_text(path: Path) -> str:
    """Read a document as-is, treating a missing file as empty."""
    try:
        with open(path, "r", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return ""
    except OSError as e:
        raise CredentialStoreError(f"Unable to read {path}: {e}") from e


def _write_text(path: Path, text: str, mode: Optional[int] = None) -> None:
    """
    Replace a document atomically through a temporary file in the same directory.

    Without an explicit mode an existing file keeps its permissions.
    """
    try:
        if mode is None and path.exists():
            mode = stat.S_IMODE(path.stat().st_mode)
        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", newline="") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            if mode is not None:
                os.chmod(temp_path, mode)
            os.replace(temp_path, path)
        except OSError:
            os.unlink(temp_path)
            raise
    except OSError as e:
        raise CredentialStoreError(f"Unable to write {path}: {e}") from e


class CredentialStore:
    """
    Reads, merges and writes the AWS CLI config and credentials files.

    Not safe against concurrent writers: each upsert rewrites both documents
    in full and the last writer wins.
    """

    def __init__(self, config_file: Path, credentials_file: Path) -> None:
        self.config_file = Path(config_file)
        self.credentials_file = Path(credentials_file)

    @classmethod
    def from_environment(
        cls,
        config_file: Optional[str] = None,
        credentials_file: Optional[str] = None,
    ) -> "CredentialStore":
        """
        Resolve file locations the way the AWS CLI does.

        Explicit arguments win, then AWS_CONFIG_FILE / AWS_SHARED_CREDENTIALS_FILE,
        then ~/.aws/config and ~/.aws/credentials.
        """
        aws_dir = Path.home() / AWS_DIR_NAME
        resolved_config = config_file or os.environ.get(AWS_CONFIG_FILE_ENV) or str(aws_dir / AWS_CONFIG_FILENAME)
        resolved_credentials = (
            credentials_file
            or os.environ.get(AWS_SHARED_CREDENTIALS_FILE_ENV)
            or str(aws_dir / AWS_CREDENTIALS_FILENAME)
        )
        return cls(Path(resolved_config).expanduser(), Path(resolved_credentials).expanduser())

    def upsert_profile(self, name: str, profile: ProfileCredentials) -> None:
        """
        Write the region and credentials for a profile.

        Profile names are written as-is, including names that contain dots.

        Args:
            name: Profile name
            profile: Region and credentials to store

        Raises:
            CredentialStoreError: If a directory cannot be created or a file cannot be read, parsed or written
        """
        for directory in {self.config_file.parent, self.credentials_file.parent}:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise CredentialStoreError(f"Unable to create directory {directory}: {e}") from e

        config_text = merge_section(
            _read_text(self.config_file),
            self.config_file,
            config_section_name(name),
            {"region": profile.region},
        )
        credentials_text = merge_section(
            _read_text(self.credentials_file),
            self.credentials_file,
            name,
            {
                "aws_access_key_id": profile.access_key_id,
                "aws_secret_access_key": profile.secret_access_key,
                "aws_session_token": profile.session_token,
            },
        )

        _write_text(self.config_file, config_text)
        _write_text(self.credentials_file, credentials_text, mode=0o600)
        logger.debug(f"Updated profile '{name}' in {self.config_file} and {self.credentials_file}")

    def read_profile(self, name: str) -> Optional[Dict[str, str]]:
        """
        Read back the stored values for a profile.

        Returns:
            Merged config and credentials keys, or None if the profile is in neither file
        """
        config = _parse(_read_text(self.config_file), self.config_file)
        credentials = _parse(_read_text(self.credentials_file), self.credentials_file)

        values: Dict[str, str] = {}
        section = config_section_name(name)
        if config.has_section(section):
            values.update(config.items(section, raw=True))
        if credentials.has_section(name):
            values.update(credentials.items(name, raw=True))
        return values or None
