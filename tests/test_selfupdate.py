"""Tests for the pyspm release check."""

import asyncio
import json

import pytest

from common.errors import FetchError
from registry.client import RegistryClient
from versioning.models import CheckFailed, UpdateAvailable, UpToDate
from versioning.selfupdate import SelfUpdateChecker

from conftest import REGISTRY

SELF_MANIFEST = f"{REGISTRY}/packages/spm-team/pyspm/spm.json"


@pytest.fixture
def registry(fetcher):
    fetcher.routes[SELF_MANIFEST] = {"versions": {"latest": "0.2.0", "dev-latest": "0.3.0-rc.1"}}
    return RegistryClient(fetcher, REGISTRY)


class TestSelfUpdateChecker:
    """Report-and-stage behavior."""

    def test_up_to_date(self, registry, store):
        checker = SelfUpdateChecker(registry, store, channel="latest")
        status = asyncio.run(checker.check_for_update("0.2.0"))
        assert status == UpToDate(version="0.2.0")
        assert checker.read_staged_update() is None

    def test_update_available_is_staged(self, registry, store, clock):
        checker = SelfUpdateChecker(registry, store, channel="latest", clock=clock)
        status = asyncio.run(checker.check_for_update("0.1.0"))
        assert isinstance(status, UpdateAvailable)
        assert status.latest_version == "0.2.0"
        assert status.is_newer is True
        assert status.source_url == f"{REGISTRY}/packages/spm-team/pyspm/0.2.0.py"

        staged = json.loads(store.read_text("spm-update.json"))
        assert staged == {
            "version": "0.2.0",
            "channel": "latest",
            "source_url": status.source_url,
            "staged_at": int(clock() * 1000),
        }
        assert checker.read_staged_update() == staged

    def test_prerelease_channel(self, registry, store):
        checker = SelfUpdateChecker(registry, store, channel="dev-latest")
        status = asyncio.run(checker.check_for_update("0.2.0"))
        assert status.latest_version == "0.3.0-rc.1"
        assert status.channel == "dev-latest"

    def test_downgrade_is_reported_as_not_newer(self, registry, store):
        checker = SelfUpdateChecker(registry, store)
        status = asyncio.run(checker.check_for_update("0.9.0"))
        assert isinstance(status, UpdateAvailable)
        assert status.is_newer is False

    def test_network_failure_is_swallowed(self, fetcher, store):
        fetcher.routes[SELF_MANIFEST] = FetchError("offline", url=SELF_MANIFEST)
        checker = SelfUpdateChecker(RegistryClient(fetcher, REGISTRY), store)
        status = asyncio.run(checker.check_for_update("0.1.0"))
        assert isinstance(status, CheckFailed)
        assert not store.exists("spm-update.json")

    def test_missing_channel_entry(self, fetcher, store):
        fetcher.routes[SELF_MANIFEST] = {"versions": {"latest": "0.2.0"}}
        checker = SelfUpdateChecker(RegistryClient(fetcher, REGISTRY), store, channel="dev-latest")
        assert isinstance(asyncio.run(checker.check_for_update("0.1.0")), CheckFailed)

    def test_unknown_channel_rejected(self, registry, store):
        with pytest.raises(ValueError):
            SelfUpdateChecker(registry, store, channel="nightly")

    def test_clear_staged_update(self, registry, store):
        checker = SelfUpdateChecker(registry, store)
        asyncio.run(checker.check_for_update("0.1.0"))
        checker.clear_staged_update()
        assert checker.read_staged_update() is None
