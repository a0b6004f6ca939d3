"""
Tests for configuration loading and the database management script.
"""

import pytest
from pydantic import ValidationError

from api.config import APIConfig
from utilities.config import ServiceConfig

import manage_db


class TestServiceConfig:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
        monkeypatch.delenv("MONGODB_DATABASE", raising=False)
        cfg = ServiceConfig(_env_file=None)
        assert cfg.bcrypt_rounds == 4
        assert cfg.mongodb_database == "book_manager_db"
        assert cfg.get_log_file_path() is None

    def test_bcrypt_rounds_from_environment(self, monkeypatch):
        monkeypatch.setenv("BCRYPT_ROUNDS", "12")
        assert ServiceConfig(_env_file=None).bcrypt_rounds == 12

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_bcrypt_rounds_out_of_range(self, rounds):
        with pytest.raises(ValidationError):
            ServiceConfig(_env_file=None, bcrypt_rounds=rounds)

    def test_log_settings_are_normalised(self):
        cfg = ServiceConfig(_env_file=None, log_level="debug", log_format="CONSOLE")
        assert cfg.log_level == "DEBUG"
        assert cfg.log_format == "console"

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            ServiceConfig(_env_file=None, log_format="xml")


class TestAPIConfig:

    def test_token_lifetime_from_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_EXP_MINUTES", "30")
        assert APIConfig(_env_file=None).jwt_exp_minutes == 30

    def test_default_token_lifetime(self, monkeypatch):
        monkeypatch.delenv("JWT_EXP_MINUTES", raising=False)
        assert APIConfig(_env_file=None).jwt_exp_minutes == 10


class TestManageDb:

    @pytest.mark.asyncio
    async def test_usage_without_command(self, capsys):
        assert await manage_db.main(["manage_db.py"]) == 1
        assert "Usage" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_unknown_command(self, capsys):
        assert await manage_db.main(["manage_db.py", "drop-everything"]) == 1
