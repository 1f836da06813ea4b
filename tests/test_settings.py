import pytest

from skillmind_indexer.core.constants import FINALITY_ACCEPTED
from skillmind_indexer.settings import Settings, get_settings

from conftest import CONTRACT, OTHER_TOKEN, TOKEN


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ("CONTRACT_ADDRESS", "TOKEN_CONTRACTS", "TOKEN_CONTRACTS_LEN", "STREAM_URL", "DB_CONNECTION_STRING"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:
    settings = Settings(_env_file=None)

    assert settings.starting_block == 0
    assert settings.finality == FINALITY_ACCEPTED
    assert settings.decimals == 18
    assert settings.api_port == 8000
    assert settings.db_connection_string.startswith("postgresql+psycopg2://")
    assert settings.token_contract_list() == ()


def test_indexer_config_requires_contract(clean_env: pytest.MonkeyPatch) -> None:
    with pytest.raises(ValueError, match="CONTRACT_ADDRESS"):
        Settings(_env_file=None).indexer_config()


def test_indexer_config_from_env(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("CONTRACT_ADDRESS", CONTRACT)
    clean_env.setenv("TOKEN_CONTRACTS", f"{TOKEN}, {OTHER_TOKEN}")
    clean_env.setenv("STARTING_BLOCK", "1200")
    clean_env.setenv("STREAM_URL", "http://stream.test")

    config = Settings(_env_file=None).indexer_config()

    assert config.contract_address == CONTRACT
    assert config.token_contracts == (TOKEN, OTHER_TOKEN)
    assert config.starting_block == 1200
    assert config.stream_url == "http://stream.test"


def test_indexed_token_contracts(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("TOKEN_CONTRACTS", TOKEN)
    clean_env.setenv("TOKEN_CONTRACTS_LEN", "2")
    clean_env.setenv("TOKEN_CONTRACT_0", TOKEN)
    clean_env.setenv("TOKEN_CONTRACT_1", OTHER_TOKEN)

    assert Settings(_env_file=None).token_contract_list() == (TOKEN, OTHER_TOKEN)


def test_indexed_token_contracts_from_env_file(clean_env: pytest.MonkeyPatch, tmp_path) -> None:
    clean_env.delenv("TOKEN_CONTRACT_0", raising=False)
    clean_env.delenv("TOKEN_CONTRACT_1", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text(f"TOKEN_CONTRACTS_LEN=2\nTOKEN_CONTRACT_0={TOKEN}\nTOKEN_CONTRACT_1={OTHER_TOKEN}\n")

    assert Settings(_env_file=env_file).token_contract_list() == (TOKEN, OTHER_TOKEN)


def test_process_env_overrides_env_file_token(clean_env: pytest.MonkeyPatch, tmp_path) -> None:
    clean_env.setenv("TOKEN_CONTRACT_0", OTHER_TOKEN)
    env_file = tmp_path / ".env"
    env_file.write_text(f"TOKEN_CONTRACTS_LEN=1\nTOKEN_CONTRACT_0={TOKEN}\n")

    assert Settings(_env_file=env_file).token_contract_list() == (OTHER_TOKEN,)


def test_storage_config(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("DB_CONNECTION_STRING", "sqlite:///:memory:")
    clean_env.setenv("DB_POOL_SIZE", "3")

    storage = Settings(_env_file=None).storage_config()

    assert storage.url == "sqlite:///:memory:"
    assert storage.pool_size == 3


def test_get_settings_is_cached(clean_env: pytest.MonkeyPatch) -> None:
    assert get_settings() is get_settings()
