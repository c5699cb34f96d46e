import pytest
from fastapi.testclient import TestClient

from file_vault.config import Credentials, VaultConfig
from file_vault.main import create_app

USERNAME = "alice"
PASSWORD = "s3cret"


@pytest.fixture
def auth():
    return (USERNAME, PASSWORD)


@pytest.fixture
def vault_config(tmp_path):
    """Vault configuration isolated under a per-test directory."""
    return VaultConfig(
        credentials=Credentials(username=USERNAME, password=PASSWORD),
        upload_dir=tmp_path / "uploads",
        temp_dir=tmp_path / "temp",
    )


@pytest.fixture
def client(vault_config):
    # Entering the client runs the lifespan, which creates the storage directories
    with TestClient(create_app(vault_config)) as test_client:
        yield test_client
