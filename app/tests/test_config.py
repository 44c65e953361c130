import logging
from pathlib import Path

import pytest

from snarkbridge.config import Settings
from snarkbridge.logs import LOGGER_NAME, configure_logging


def test_defaults():
    settings = Settings.from_env({})
    assert settings.cache_dir == Path("artifacts")
    assert settings.batch_size == 2
    assert settings.workers == 4
    assert settings.tower == "simulation"
    assert settings.verify_external is True


def test_overrides():
    settings = Settings.from_env(
        {
            "SNARKBRIDGE_CACHE_DIR": "/tmp/cache",
            "SNARKBRIDGE_BATCH_SIZE": "4",
            "SNARKBRIDGE_WORKERS": " 2 ",
            "SNARKBRIDGE_TOWER": "default",
            "SNARKBRIDGE_SEED": "abc",
            "SNARKBRIDGE_LOG_LEVEL": "debug",
            "SNARKBRIDGE_VERIFY_EXTERNAL": "off",
        }
    )
    assert settings.cache_dir == Path("/tmp/cache")
    assert settings.batch_size == 4
    assert settings.workers == 2
    assert settings.tower == "default"
    assert settings.seed == "abc"
    assert settings.log_level == "DEBUG"
    assert settings.verify_external is False


def test_blank_values_fall_back():
    assert Settings.from_env({"SNARKBRIDGE_BATCH_SIZE": "  "}).batch_size == 2


@pytest.mark.parametrize(
    "key, value",
    [
        ("SNARKBRIDGE_BATCH_SIZE", "two"),
        ("SNARKBRIDGE_BATCH_SIZE", "0"),
        ("SNARKBRIDGE_WORKERS", "-1"),
        ("SNARKBRIDGE_TOWER", "bn254"),
        ("SNARKBRIDGE_LOG_LEVEL", "LOUD"),
        ("SNARKBRIDGE_VERIFY_EXTERNAL", "maybe"),
    ],
)
def test_invalid(key, value):
    with pytest.raises(ValueError, match=key):
        Settings.from_env({key: value})


def test_configure_logging_once():
    logger = configure_logging("debug")
    configure_logging(logging.WARNING)
    ours = [h for h in logger.handlers if getattr(h, "_snarkbridge", False)]
    assert len(ours) == 1
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.WARNING


if __name__ == "__main__":
    pytest.main()
