# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# commands.py

"""
Command line entry points.

  python -m snarkbridge.commands verify <dir>
  python -m snarkbridge.commands convert-vk <vkey.json> [output.json]
  python -m snarkbridge.commands aggregate <out_dir> <dir> [<dir> ...]

Each <dir> holds proof.json, vkey.json and public_signals.json. Settings
come from the SNARKBRIDGE_* environment variables (see `config`).
"""

import logging
import sys
from pathlib import Path

from snarkbridge import snark
from snarkbridge.config import Settings
from snarkbridge.errors import SnarkBridgeError, StageError
from snarkbridge.groth_convert import ExternalBundle
from snarkbridge.logs import configure_logging
from snarkbridge.pipeline import AggregationPipeline
from snarkbridge.vk_convert import convert_vk_file

logger = logging.getLogger(__name__)

USAGE = """Usage:
  python -m snarkbridge.commands verify <dir>
  python -m snarkbridge.commands convert-vk <vkey.json> [output.json]
  python -m snarkbridge.commands aggregate <out_dir> <dir> [<dir> ...]"""


def verify_directory(directory: str | Path) -> None:
    """Verify the external proof stored in `directory`."""
    bundle = ExternalBundle.from_directory(directory)
    snark.verify_external(bundle)
    logger.info("proof in %s is valid (%s)", directory, bundle.curve.name)


def aggregate_directories(
    output: str | Path, directories: list[str], settings: Settings
) -> None:
    """Run the whole pipeline over the external proofs in `directories`."""
    bundles = [ExternalBundle.from_directory(d) for d in directories]
    pipeline = AggregationPipeline.from_settings(settings)
    exported = pipeline.run(bundles)
    exported.to_directory(output)
    logger.info("aggregated %d proofs into %s", len(bundles), output)


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 1
    configure_logging(settings.log_level)

    command, args = argv[0], argv[1:]
    try:
        if command == "verify" and len(args) == 1:
            verify_directory(args[0])
        elif command == "convert-vk" and len(args) in (1, 2):
            output = args[1] if len(args) == 2 else Path(args[0]).with_suffix(".normalized.json")
            convert_vk_file(args[0], output)
        elif command == "aggregate" and len(args) >= 2:
            aggregate_directories(args[0], args[1:], settings)
        else:
            print(USAGE, file=sys.stderr)
            return 1
    except StageError as e:
        kind = "proof invalid" if e.is_invalid_proof else "infrastructure failure"
        print(f"{kind}: stage {e.stage} on {e.curve}: {e.cause}", file=sys.stderr)
        return 2
    except (SnarkBridgeError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
