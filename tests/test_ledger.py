"""
Tests for the in-memory ledger used to charge registration fees.
"""

import pytest

from paperchain.errors import TransferError
from paperchain.ledger import InMemoryLedger, Transfer
from paperchain.result import Err, Ok


class TestInMemoryLedger:

    def test_initial_balances(self):
        ledger = InMemoryLedger({"ST1TEST": 5000})
        assert ledger.balance_of("ST1TEST") == 5000
        assert ledger.balance_of("ST2TEST") == 0
        assert ledger.transfers == []

    def test_credit(self):
        ledger = InMemoryLedger()
        assert ledger.credit("ST1TEST", 10) == 10
        assert ledger.credit("ST1TEST", 5) == 15

    def test_negative_credit_rejected(self):
        with pytest.raises(ValueError):
            InMemoryLedger({"ST1TEST": -1})

    def test_transfer_moves_funds(self):
        ledger = InMemoryLedger({"ST1TEST": 5000})
        assert ledger.transfer(1000, "ST1TEST", "ST2TEST") == Ok(True)
        assert ledger.balances == {"ST1TEST": 4000, "ST2TEST": 1000}
        assert ledger.transfers == [Transfer(amount=1000, sender="ST1TEST", recipient="ST2TEST")]

    def test_exact_balance(self):
        ledger = InMemoryLedger({"ST1TEST": 1000})
        assert ledger.transfer(1000, "ST1TEST", "ST2TEST").is_ok
        assert ledger.balance_of("ST1TEST") == 0

    @pytest.mark.parametrize("amount,sender,recipient,code", [
        (0, "ST1TEST", "ST2TEST", TransferError.NON_POSITIVE_AMOUNT),
        (-5, "ST1TEST", "ST2TEST", TransferError.NON_POSITIVE_AMOUNT),
        (10, "ST1TEST", "ST1TEST", TransferError.SAME_SENDER_AND_RECIPIENT),
        (5001, "ST1TEST", "ST2TEST", TransferError.INSUFFICIENT_BALANCE),
        (1, "ST9POOR", "ST2TEST", TransferError.INSUFFICIENT_BALANCE),
    ])
    def test_failed_transfer_changes_nothing(self, amount, sender, recipient, code):
        ledger = InMemoryLedger({"ST1TEST": 5000})
        assert ledger.transfer(amount, sender, recipient) == Err(code)
        assert ledger.balances == {"ST1TEST": 5000}
        assert ledger.transfers == []

    def test_balances_is_a_copy(self):
        ledger = InMemoryLedger({"ST1TEST": 5000})
        ledger.balances["ST1TEST"] = 0
        assert ledger.balance_of("ST1TEST") == 5000

    def test_transfer_dict_uses_from_to(self):
        assert Transfer(1000, "ST1TEST", "ST2TEST").to_dict() == {
            "amount": 1000, "from": "ST1TEST", "to": "ST2TEST",
        }
