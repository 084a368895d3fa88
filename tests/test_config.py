from pathlib import Path

import pytest
from pydantic import ValidationError

from toolboxer.config import PortownOptions, Settings, StateFilter, load_settings


def test_load_settings_defaults_without_file(tmp_path: Path):
    assert load_settings(None) == Settings()
    assert load_settings(tmp_path / "missing.yaml") == Settings()


def test_load_settings_from_yaml(tmp_path: Path):
    p = tmp_path / "settings.yaml"
    p.write_text(
        "lookup: query\n"
        "query_command: [powershell, -Command, 'Get-CimInstance Win32_Process -Filter ProcessId={pid} | ConvertTo-Csv']\n"
        "stripe_color: 240\n",
        encoding="utf-8",
    )

    settings = load_settings(p)

    assert settings.lookup == "query"
    assert settings.query_command[0] == "powershell"
    assert settings.stripe_color == 240
    assert settings.netstat_command == ["netstat", "-ano"]


def test_invalid_settings_rejected(tmp_path: Path):
    p = tmp_path / "settings.yaml"
    p.write_text("lookup: magic\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_settings(p)


def test_portown_options_are_immutable_and_validated():
    options = PortownOptions(depth=5)
    assert options.state is StateFilter.ANY

    with pytest.raises(ValidationError):
        options.depth = 1
    with pytest.raises(ValidationError):
        PortownOptions(depth=-1)
