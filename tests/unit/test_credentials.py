"""Tests for provider credential storage."""

from pathlib import Path

import pytest
import yaml

from vaada.services.fitness.models import ProviderKind
from vaada.storage.credentials import CredentialStore, get_credential_store

WALLET = "0xAbCdEf0000000000000000000000000000000001"


def test_missing_file_is_empty_store(tmp_path: Path) -> None:
    store = get_credential_store(tmp_path)

    assert store.path == tmp_path / "credentials.yaml"
    assert store.get(WALLET) == {}


def test_put_is_keyed_by_lowercase_wallet(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "credentials.yaml")

    store.put(WALLET, ProviderKind.FITBIT, "rt-1", external_id="ABC123")

    raw = yaml.safe_load(store.path.read_text())
    assert WALLET.lower() in raw["subjects"]
    assert raw["subjects"][WALLET.lower()]["fitbit"]["refresh_token"] == "rt-1"
    assert store.get(WALLET.upper())[ProviderKind.FITBIT].external_id == "ABC123"


def test_rotate_keeps_external_id(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "credentials.yaml")
    store.put(WALLET, ProviderKind.STRAVA, "rt-1", external_id="athlete-9")

    store.rotate(WALLET, ProviderKind.STRAVA, "rt-2")

    credential = store.get(WALLET)[ProviderKind.STRAVA]
    assert credential.refresh_token == "rt-2"
    assert credential.external_id == "athlete-9"
    assert credential.updated_at is not None


def test_rotations_from_separate_runs_are_both_kept(tmp_path: Path) -> None:
    other = "0x00000000000000000000000000000000000000b2"
    first_run = CredentialStore(tmp_path / "credentials.yaml")
    second_run = CredentialStore(tmp_path / "credentials.yaml")
    first_run.put(WALLET, ProviderKind.FITBIT, "rt-1")
    first_run.put(other, ProviderKind.FITBIT, "rt-1")

    first_run.rotate(WALLET, ProviderKind.FITBIT, "rt-2")
    second_run.rotate(other, ProviderKind.FITBIT, "rt-3")

    assert second_run.get(WALLET)[ProviderKind.FITBIT].refresh_token == "rt-2"
    assert first_run.get(other)[ProviderKind.FITBIT].refresh_token == "rt-3"


def test_remove_last_provider_drops_wallet(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "credentials.yaml")
    store.put(WALLET, ProviderKind.STRAVA, "rt-1")

    assert store.remove(WALLET, ProviderKind.STRAVA)
    assert not store.remove(WALLET, ProviderKind.STRAVA)
    assert store.load().subjects == {}


def test_save_leaves_no_temp_files(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "credentials.yaml")
    store.put(WALLET, ProviderKind.STRAVA, "rt-1")
    store.put(WALLET, ProviderKind.FITBIT, "rt-2")

    assert [p.name for p in tmp_path.iterdir()] == ["credentials.yaml"]


def test_corrupted_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "credentials.yaml"
    path.write_text("subjects: [unclosed\n")

    with pytest.raises(yaml.YAMLError):
        CredentialStore(path).load()
