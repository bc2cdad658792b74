"""Unit tests for configuration models."""

import pytest
from pydantic import ValidationError

from db_structure_mcp.models.config import DatabaseConfig, StructureConfig


class TestDatabaseConfig:
    """Test connection URL validation."""

    def test_mysql_url(self):
        config = DatabaseConfig(url="mysql+aiomysql://root:pw@localhost:3306/shop")

        assert config.dialect == "mysql"
        assert config.driver == "aiomysql"
        assert config.database == "shop"

    def test_mariadb_url(self):
        config = DatabaseConfig(url="mariadb+aiomysql://root@localhost/shop")
        assert config.dialect == "mariadb"

    def test_url_without_database(self):
        config = DatabaseConfig(url="mysql+aiomysql://root@localhost")
        assert config.database is None

    def test_sync_driver_rejected(self):
        with pytest.raises(ValidationError, match="Async driver required"):
            DatabaseConfig(url="mysql://root@localhost/shop")

    def test_other_dialect_rejected(self):
        with pytest.raises(ValidationError, match="Unsupported database dialect"):
            DatabaseConfig(url="postgresql+asyncpg://u@localhost/db")

    def test_pool_limits(self):
        with pytest.raises(ValidationError):
            DatabaseConfig(url="mysql+aiomysql://root@localhost/shop", pool_size=0)


class TestStructureConfig:
    """Test structure settings and their environment variables."""

    def test_defaults(self):
        config = StructureConfig(confirmation_secret="s" * 16)

        assert config.max_exact_count == 50000
        assert config.max_exact_count_views == 0
        assert config.max_table_list == 250
        assert config.confirmation_ttl == 900
        assert config.config_storage_db is None
        assert config.row_count_cache_ttl == 60

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError):
            StructureConfig(confirmation_secret="short")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CONFIRMATION_SECRET", "x" * 32)
        monkeypatch.setenv("MAX_EXACT_COUNT", "1000")
        monkeypatch.setenv("MAX_EXACT_COUNT_VIEWS", "200")
        monkeypatch.setenv("MAX_TABLE_LIST", "50")
        monkeypatch.setenv("CONFIRMATION_TTL", "120")
        monkeypatch.setenv("ROW_COUNT_CACHE_TTL", "0")
        monkeypatch.setenv("CONFIG_STORAGE_DB", "pma_storage")

        config = StructureConfig.from_env()

        assert config.max_exact_count == 1000
        assert config.max_exact_count_views == 200
        assert config.max_table_list == 50
        assert config.confirmation_ttl == 120
        assert config.row_count_cache_ttl == 0
        assert config.config_storage_db == "pma_storage"

    def test_from_env_requires_secret(self, monkeypatch):
        monkeypatch.delenv("CONFIRMATION_SECRET", raising=False)

        with pytest.raises(ValueError, match="CONFIRMATION_SECRET"):
            StructureConfig.from_env()
