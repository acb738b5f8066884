"""
Integration with SOPS, used to keep secret values (e.g., CI/CD variables)
encrypted in the configuration file.
"""

import subprocess
from collections.abc import Sequence
from typing import Any

from gitlab_config.utils.binary import binary
from gitlab_config.utils.exceptions import SopsError

SOPS = "sops"
METADATA_KEY = "sops"
DEFAULT_ENC_SUFFIX = "_sops"
DEFAULT_ENC_COMMENT = "sops:enc"

DECRYPT_CMD = [
    SOPS,
    "--decrypt",
    "--input-type",
    "yaml",
    "--output-type",
    "yaml",
    "/dev/stdin",
]


def is_encrypted(parsed: Any) -> bool:
    return isinstance(parsed, dict) and METADATA_KEY in parsed


@binary([SOPS])
def _decrypt(data: str) -> str:
    result = subprocess.run(
        DECRYPT_CMD, input=data, capture_output=True, text=True, check=False
    )
    if result.returncode != 0:
        raise SopsError(
            f"sops failed to decrypt configuration: {result.stderr.strip()}"
        )
    return result.stdout


def decrypt(data: str, parsed: Any) -> str | None:
    """
    Decrypt the document data with sops when it carries sops metadata,
    returning None when it does not.
    """
    if not is_encrypted(parsed):
        return None
    return _decrypt(data)


@binary([SOPS])
def run(args: Sequence[str]) -> int:
    """Run sops with args, attached to the terminal, returning its exit code."""
    return subprocess.run([SOPS, *args], check=False).returncode
