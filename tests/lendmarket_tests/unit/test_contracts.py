"""
Unit tests for the contract collaborators the engine drives.
"""

import pytest

from lendmarket.core.constants import UINT256_MAX, ZERO_ADDRESS
from lendmarket.core.contracts import AllowListRegistry, AssetStatus, ERC20Registry, ERC721Registry, EscrowRegistry
from lendmarket.core.journal import UndoJournal
from lendmarket.core.lending_exceptions import (
    AssetLockedError,
    InvalidParametersError,
    NotFoundError,
    PermissionDeniedError,
    TransferFailureError,
)

ADMIN = "0x" + "a" * 40
ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
SPENDER = "0x" + "3" * 40


class TestERC20:

    @pytest.fixture
    def token(self):
        registry = ERC20Registry()
        token = registry.create_token(ADMIN, "Test", "TST", address="0x" + "F" * 40)
        token.mint(ADMIN, ALICE, 100)
        return token

    def test_address_is_normalized(self, token):
        assert token.address == "0x" + "f" * 40

    def test_mint_tracks_supply(self, token):
        token.mint(ADMIN, BOB, 30)

        assert token.total_supply == 130
        assert token.balance_of(BOB) == 30

    def test_transfer_exceeding_balance(self, token):
        token.approve(ALICE, SPENDER, 500)

        with pytest.raises(TransferFailureError):
            token.transfer_from(SPENDER, ALICE, BOB, 101)
        assert token.balance_of(ALICE) == 100

    def test_transfer_to_zero_address(self, token):
        token.approve(ALICE, SPENDER, 1)

        with pytest.raises(TransferFailureError):
            token.transfer_from(SPENDER, ALICE, ZERO_ADDRESS, 1)

    def test_transfer_from_spends_allowance(self, token):
        token.approve(ALICE, SPENDER, 50)

        token.transfer_from(SPENDER, ALICE, BOB, 20)

        assert token.allowance(ALICE, SPENDER) == 30
        assert token.balance_of(BOB) == 20

    def test_unlimited_allowance_not_decremented(self, token):
        token.approve(ALICE, SPENDER, UINT256_MAX)

        token.transfer_from(SPENDER, ALICE, BOB, 20)

        assert token.allowance(ALICE, SPENDER) == UINT256_MAX

    def test_transfer_from_without_allowance(self, token):
        with pytest.raises(TransferFailureError):
            token.transfer_from(SPENDER, ALICE, BOB, 1)

    def test_only_owner_mints(self, token):
        with pytest.raises(PermissionDeniedError):
            token.mint(ALICE, ALICE, 1)

    def test_journal_rollback_restores_balances_and_allowances(self, token):
        token.journal.begin()
        token.approve(ALICE, SPENDER, 40)
        token.transfer_from(SPENDER, ALICE, BOB, 25)
        token.mint(ADMIN, BOB, 5)

        token.journal.rollback()

        assert token.balance_of(ALICE) == 100
        assert BOB not in token.balances
        assert ALICE not in token.allowances
        assert token.total_supply == 100

    def test_registry_shares_attached_journal(self):
        registry = ERC20Registry()
        first = registry.create_token(ADMIN, "First", "ONE")
        journal = UndoJournal()

        registry.attach_journal(journal)
        second = registry.create_token(ADMIN, "Second", "TWO")

        assert first.journal is journal
        assert second.journal is journal

    def test_registry_lookup(self):
        registry = ERC20Registry()
        token = registry.create_token(ADMIN, "Test", "TST")

        assert registry.get_token(token.address.upper().replace("0X", "0x")) is token
        assert registry.is_registered(token.address)
        with pytest.raises(NotFoundError):
            registry.get_token("0x" + "0" * 39 + "1")


class TestERC721:

    @pytest.fixture
    def assets(self):
        registry = ERC721Registry(name="Assets", symbol="AST", owner=ADMIN)
        registry.mint(ADMIN, ALICE, 0, collateral="0x" + "C" * 40, escrow="0x" + "E" * 40)
        return registry

    def test_mint_records_extensions(self, assets):
        assert assets.owner_of(0) == ALICE
        assert assets.status_of(0) is AssetStatus.ACTIVE
        assert assets.collateral_of(0) == "0x" + "c" * 40
        assert assets.escrow_of(0) == "0x" + "e" * 40
        assert assets.lending_operator_of(0) is None

    def test_only_owner_mints(self, assets):
        with pytest.raises(PermissionDeniedError):
            assets.mint(ALICE, ALICE, 1)

    def test_status_changes_by_owner_only(self, assets):
        assets.set_status(ADMIN, 0, AssetStatus.DORMANT)
        assert assets.status_of(0) is AssetStatus.DORMANT

        with pytest.raises(PermissionDeniedError):
            assets.set_status(ALICE, 0, AssetStatus.ACTIVE)

    def test_double_mint_rejected(self, assets):
        with pytest.raises(TransferFailureError):
            assets.mint(ADMIN, BOB, 0)

    def test_transfer_from_by_operator(self, assets):
        assets.set_approval_for_all(ALICE, SPENDER, True)

        assets.transfer_from(SPENDER, ALICE, BOB, 0)

        assert assets.owner_of(0) == BOB

    def test_transfer_from_unauthorized(self, assets):
        with pytest.raises(PermissionDeniedError):
            assets.transfer_from(BOB, ALICE, BOB, 0)

    def test_locked_asset_cannot_move(self, assets):
        assets.set_locked(0, True)

        with pytest.raises(AssetLockedError):
            assets.transfer_from(ALICE, ALICE, BOB, 0)

        assets.set_locked(0, False)
        assets.transfer_from(ALICE, ALICE, BOB, 0)
        assert assets.owner_of(0) == BOB

    def test_privileged_transfer_checks_owner(self, assets):
        with pytest.raises(TransferFailureError):
            assets.transfer(BOB, ALICE, 0)

    def test_unknown_asset(self, assets):
        with pytest.raises(NotFoundError):
            assets.owner_of(5)
        with pytest.raises(NotFoundError):
            assets.is_locked(5)

    def test_missing_escrow(self, assets):
        assets.mint(ADMIN, ALICE, 1)

        with pytest.raises(NotFoundError):
            assets.escrow_of(1)

    def test_lending_operator_is_per_asset(self, assets):
        assets.mint(ADMIN, ALICE, 1)
        assets.set_lending_operator(0, SPENDER.upper().replace("0X", "0x"))

        assert assets.lending_operator_of(0) == SPENDER
        assert assets.lending_operator_of(1) is None
        assert not assets.is_approved_for_all(ALICE, SPENDER)

    def test_lending_operator_cannot_transfer(self, assets):
        assets.mint(ADMIN, ALICE, 1)
        assets.set_lending_operator(0, SPENDER)

        with pytest.raises(PermissionDeniedError):
            assets.transfer_from(SPENDER, ALICE, SPENDER, 1)
        with pytest.raises(PermissionDeniedError):
            assets.transfer_from(SPENDER, ALICE, SPENDER, 0)
        assert assets.owner_of(1) == ALICE

    def test_clearing_lending_operator_keeps_approvals(self, assets):
        assets.set_approval_for_all(ALICE, SPENDER, True)
        assets.set_lending_operator(0, SPENDER)

        assets.clear_lending_operator(0)
        assets.clear_lending_operator(0)

        assert assets.lending_operator_of(0) is None
        assert assets.is_approved_for_all(ALICE, SPENDER)

    def test_journal_rollback(self, assets):
        assets.journal.begin()
        assets.transfer(ALICE, BOB, 0)
        assets.set_locked(0, True)
        assets.set_lending_operator(0, SPENDER)

        assets.journal.rollback()

        assert assets.owner_of(0) == ALICE
        assert not assets.is_locked(0)
        assert assets.lending_operator_of(0) is None


class TestEscrow:

    def test_escrow_holds_and_approves(self):
        tokens = ERC20Registry()
        token = tokens.create_token(ADMIN, "Revenue", "REV")
        escrows = EscrowRegistry(tokens)
        escrow = escrows.open_escrow(9)
        token.mint(ADMIN, escrow.address, 12)

        escrow.approve(token.address, SPENDER, 12)

        assert escrows.get(escrow.address) is escrow
        assert escrow.balance_of(token.address) == 12
        assert escrow.allowance(token.address, SPENDER) == 12

    def test_escrow_address_is_deterministic(self):
        first = EscrowRegistry(ERC20Registry()).open_escrow(9)
        second = EscrowRegistry(ERC20Registry()).open_escrow(9)

        assert first.address == second.address

    def test_unknown_escrow(self):
        with pytest.raises(NotFoundError):
            EscrowRegistry(ERC20Registry()).get("0x" + "1" * 40)


class TestAllowLists:

    @pytest.fixture
    def lists(self):
        return AllowListRegistry()

    def test_membership(self, lists):
        list_id = lists.create(ALICE, "guild", [BOB.upper().replace("0X", "0x")])

        assert lists.is_member(list_id, BOB) == 1
        assert lists.is_member(list_id, SPENDER) == 0
        assert lists.is_member(99, BOB) == 0

    def test_owner_manages_members(self, lists):
        list_id = lists.create(ALICE, "guild")

        lists.add_members(ALICE, list_id, [BOB], rank=3)
        assert lists.is_member(list_id, BOB) == 3

        lists.remove_members(ALICE, list_id, [BOB])
        assert lists.is_member(list_id, BOB) == 0

        with pytest.raises(PermissionDeniedError):
            lists.add_members(BOB, list_id, [BOB])

    def test_transfer_ownership(self, lists):
        list_id = lists.create(ALICE, "guild")

        lists.transfer_ownership(ALICE, list_id, BOB)

        lists.add_members(BOB, list_id, [SPENDER])
        assert lists.get(list_id).owner == BOB

    def test_invalid_lists(self, lists):
        with pytest.raises(InvalidParametersError):
            lists.create(ALICE, "")
        with pytest.raises(NotFoundError):
            lists.get(1)
