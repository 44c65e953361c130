# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import pytest

from snarkbridge.commands import main, verify_directory
from snarkbridge.errors import VerifyError
from snarkbridge.files import load_json, save_json


@pytest.fixture
def proof_dir(tmp_path, exp_bundle):
    directory = tmp_path / "proof"
    exp_bundle(2, 12).to_directory(directory)
    return directory


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ("SNARKBRIDGE_TOWER", "SNARKBRIDGE_BATCH_SIZE", "SNARKBRIDGE_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SNARKBRIDGE_CACHE_DIR", str(tmp_path / "cache"))


def test_verify_directory(proof_dir):
    verify_directory(proof_dir)


def test_verify_directory_tampered(proof_dir):
    save_json(proof_dir / "public_signals.json", ["2", "4097"])
    with pytest.raises(VerifyError):
        verify_directory(proof_dir)


def test_main_verify(proof_dir):
    assert main(["verify", str(proof_dir)]) == 0


def test_main_verify_invalid(proof_dir, capsys):
    save_json(proof_dir / "public_signals.json", ["2", "4097"])
    assert main(["verify", str(proof_dir)]) == 2
    assert "pairing" in capsys.readouterr().err


def test_main_missing_directory(tmp_path, capsys):
    assert main(["verify", str(tmp_path / "nowhere")]) == 2
    assert "error" in capsys.readouterr().err


def test_main_convert_vk(proof_dir, tmp_path):
    output = tmp_path / "normalized.json"
    assert main(["convert-vk", str(proof_dir / "vkey.json"), str(output)]) == 0
    assert load_json(output) == load_json(proof_dir / "vkey.json")


def test_main_convert_vk_invalid_json(tmp_path, capsys):
    source = tmp_path / "vkey.json"
    source.write_text("{not json")
    assert main(["convert-vk", str(source), str(tmp_path / "out.json")]) == 2
    assert "not valid JSON" in capsys.readouterr().err


def test_main_verify_bad_npublic(proof_dir, capsys):
    vk = load_json(proof_dir / "vkey.json")
    save_json(proof_dir / "vkey.json", dict(vk, nPublic="two"))
    assert main(["verify", str(proof_dir)]) == 2
    assert "nPublic" in capsys.readouterr().err


def test_main_usage(capsys):
    assert main([]) == 1
    assert main(["aggregate", "out"]) == 1
    assert main(["unknown"]) == 1
    assert "Usage" in capsys.readouterr().err


def test_main_bad_configuration(monkeypatch, capsys):
    monkeypatch.setenv("SNARKBRIDGE_BATCH_SIZE", "zero")
    assert main(["verify", "anything"]) == 1
    assert "SNARKBRIDGE_BATCH_SIZE" in capsys.readouterr().err


def test_main_aggregate_wrong_count(proof_dir, tmp_path, capsys):
    assert main(["aggregate", str(tmp_path / "out"), str(proof_dir)]) == 2
    assert "expected 2" in capsys.readouterr().err


def test_main_aggregate_default_tower(proof_dir, tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("SNARKBRIDGE_TOWER", "default")
    assert main(["aggregate", str(tmp_path / "out"), str(proof_dir), str(proof_dir)]) == 2
    err = capsys.readouterr().err
    assert "infrastructure failure" in err
    assert "bls12_377" in err


if __name__ == "__main__":
    pytest.main()
