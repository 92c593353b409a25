"""Tests for wallet identity resolution."""

import asyncio
import threading

import pytest

from conftest import OWNER_WALLET
from coursepass.core.exceptions import InvalidWalletAddressError
from coursepass.identity.models import User
from coursepass.identity.service import (
    IdentityService,
    UsernameTakenError,
    WalletAlreadyRegisteredError,
    normalize_wallet_address,
)


class TestNormalizeWalletAddress:
    def test_lowercases_and_strips(self):
        assert normalize_wallet_address("  0xABcD  ") == "0xabcd"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_is_rejected(self, value):
        with pytest.raises(InvalidWalletAddressError):
            normalize_wallet_address(value)


class TestResolveOrCreate:
    """Tests for resolve_or_create."""

    @pytest.mark.asyncio
    async def test_creates_user_on_first_connection(self, identity_service, store):
        """Should create a placeholder user with the normalized wallet."""
        user = await identity_service.resolve_or_create(OWNER_WALLET)

        assert user.id is not None
        assert user.wallet_address == OWNER_WALLET.lower()
        assert user.username.startswith("user_")
        assert store.get_user(user.id) == user

    @pytest.mark.asyncio
    async def test_case_variants_resolve_to_one_user(self, identity_service, store):
        first = await identity_service.resolve_or_create(OWNER_WALLET.upper())
        second = await identity_service.resolve_or_create(OWNER_WALLET.lower())
        third = await identity_service.resolve_or_create(f" {OWNER_WALLET} ")

        assert first.id == second.id == third.id
        assert store.get_user(first.id + 1) is None

    @pytest.mark.asyncio
    async def test_rewrites_legacy_mixed_case_address(self, identity_service, store):
        """A stored address differing only in case is rewritten normalized."""
        legacy = store.insert_user(User(username="legacy", wallet_address=OWNER_WALLET))

        user = await identity_service.resolve_or_create(OWNER_WALLET.lower())

        assert user.id == legacy.id
        assert user.wallet_address == OWNER_WALLET.lower()
        assert store.get_user(legacy.id).wallet_address == OWNER_WALLET.lower()

    @pytest.mark.asyncio
    async def test_retries_placeholder_username_collision(
        self, identity_service, store, monkeypatch
    ):
        store.insert_user(User(username="user_taken"))
        names = iter(["user_taken", "user_free"])
        monkeypatch.setattr(
            "coursepass.identity.service.placeholder_username", lambda: next(names)
        )

        user = await identity_service.resolve_or_create(OWNER_WALLET)

        assert user.username == "user_free"

    def test_concurrent_first_connections_create_one_user(self, store, clock):
        service = IdentityService(store, clock)
        results = []

        def connect(address: str) -> None:
            results.append(asyncio.run(service.resolve_or_create(address)))

        variants = [OWNER_WALLET.lower(), OWNER_WALLET.upper(), OWNER_WALLET] * 4
        threads = [threading.Thread(target=connect, args=(v,)) for v in variants]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({u.id for u in results}) == 1


class TestFindByWallet:
    def test_never_creates(self, identity_service, store):
        assert identity_service.find_by_wallet(OWNER_WALLET) is None
        assert store.get_user(1) is None

    def test_matches_any_case(self, identity_service, owner):
        assert identity_service.find_by_wallet(OWNER_WALLET.upper()).id == owner.id


class TestRegister:
    @pytest.mark.asyncio
    async def test_registers_with_normalized_wallet(self, identity_service):
        user = await identity_service.register(
            "alice", wallet_address=OWNER_WALLET, is_creator=True
        )

        assert user.username == "alice"
        assert user.wallet_address == OWNER_WALLET.lower()
        assert user.is_creator is True

    @pytest.mark.asyncio
    async def test_duplicate_username(self, identity_service):
        await identity_service.register("alice")

        with pytest.raises(UsernameTakenError):
            await identity_service.register("alice")

    @pytest.mark.asyncio
    async def test_duplicate_wallet_in_other_case(self, identity_service):
        await identity_service.register("alice", wallet_address=OWNER_WALLET.lower())

        with pytest.raises(WalletAlreadyRegisteredError):
            await identity_service.register("bob", wallet_address=OWNER_WALLET.upper())
