"""Tests for the ledger engine, splits and balance presentation."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from tripshare.ledger import (
    Roster,
    build_equal_split,
    compute_ledger,
    convert_amount,
    format_signed,
    group_expenses_by_day,
    round_for_display,
    summarize_balances,
)
from tripshare.models.expense import Expense
from tripshare.models.ledger import BalanceDirection


def make_expense(payer, amount, split, currency="TWD", **kwargs):
    return Expense(
        trip_id=kwargs.pop("trip_id", uuid4()),
        item_name=kwargs.pop("item_name", "item"),
        amount=amount,
        currency=currency,
        payer=payer,
        split_details=split,
        **kwargs,
    )


class TestComputeLedger:
    """Tests for compute_ledger."""

    def test_three_way_split(self):
        """One payer, equal three-way split."""
        expenses = [make_expense("A", 300, {"A": 100, "B": 100, "C": 100})]

        ledger = compute_ledger(expenses, ["A", "B", "C"])

        assert ledger.totals == {"TWD": Decimal("300")}
        assert ledger.balances == {
            "A": {"TWD": Decimal("200")},
            "B": {"TWD": Decimal("-100")},
            "C": {"TWD": Decimal("-100")},
        }

    def test_payer_not_in_roster_gets_bucket(self):
        """A payer who is not a companion still accrues a balance."""
        expenses = [make_expense("Guest", 50, {"A": 50})]

        ledger = compute_ledger(expenses, ["A", "B"])

        assert ledger.balances["Guest"] == {"TWD": Decimal("50")}
        assert ledger.balances["A"] == {"TWD": Decimal("-50")}
        assert ledger.balances["B"] == {}

    def test_roster_names_seeded_without_activity(self):
        ledger = compute_ledger([], ["A", "B"])
        assert ledger.totals == {}
        assert ledger.balances == {"A": {}, "B": {}}

    def test_empty_split_credits_payer_only(self):
        """A shared-fund top-up with no consumers."""
        ledger = compute_ledger([make_expense("A", 1000, {})], ["A", "B"])
        assert ledger.totals == {"TWD": Decimal("1000")}
        assert ledger.balances["A"] == {"TWD": Decimal("1000")}
        assert ledger.balances["B"] == {}

    def test_currencies_are_kept_apart(self):
        expenses = [
            make_expense("A", 3000, {"A": 1500, "B": 1500}, currency="JPY"),
            make_expense("B", 200, {"A": 100, "B": 100}, currency="TWD"),
        ]

        ledger = compute_ledger(expenses, ["A", "B"])

        assert ledger.totals == {"JPY": Decimal("3000"), "TWD": Decimal("200")}
        assert ledger.balances["A"] == {"JPY": Decimal("1500"), "TWD": Decimal("-100")}
        assert ledger.balances["B"] == {"JPY": Decimal("-1500"), "TWD": Decimal("100")}
        assert ledger.currencies == ["JPY", "TWD"]

    def test_payer_balance_is_amount_minus_own_share(self):
        expenses = [make_expense("A", 90, {"A": 30, "B": 45, "C": 15})]
        ledger = compute_ledger(expenses, ["A", "B", "C"])
        assert ledger.balance_of("A", "TWD") == Decimal("60")
        assert ledger.balance_of("B", "TWD") == Decimal("-45")
        assert ledger.balance_of("C", "TWD") == Decimal("-15")

    def test_no_rounding_during_accumulation(self):
        """Thirds stay exact enough that three of them cancel the payment."""
        third = Decimal(100) / 3
        expenses = [make_expense("A", 100, {"A": third, "B": third, "C": third})]
        ledger = compute_ledger(expenses, ["A", "B", "C"])
        assert ledger.balance_of("B", "TWD") == -third
        assert abs(sum(b["TWD"] for b in ledger.balances.values())) < Decimal("1e-20")

    def test_conservation(self):
        """Sum of balances equals total paid minus total shares, per currency."""
        expenses = [
            make_expense("A", 300, {"A": 100, "B": 100, "C": 100}),
            make_expense("Guest", 80, {"B": 50}),
            make_expense("C", 500, {"A": 250, "C": 250}, currency="USD"),
            make_expense("B", 120, {"A": 60, "Dave": 70}),
        ]

        ledger = compute_ledger(expenses, ["A", "B", "C"])

        for currency in ("TWD", "USD"):
            shares = sum(
                (share for e in expenses if e.currency == currency for share in e.split_details.values()),
                Decimal("0"),
            )
            net = sum(
                (per.get(currency, Decimal("0")) for per in ledger.balances.values()),
                Decimal("0"),
            )
            assert net == ledger.totals[currency] - shares

    def test_idempotent(self):
        expenses = [make_expense("A", 300, {"A": 100, "B": 200})]
        first = compute_ledger(expenses, ["A", "B"])
        second = compute_ledger(expenses, ["A", "B"])
        assert first == second
        assert first is not second

    def test_raw_rows_are_read_leniently(self):
        """Malformed rows contribute zero instead of raising."""
        rows = [
            {"payer": "A", "amount": "300", "currency": "twd",
             "split_details": '{"A": 100, "B": "oops", "C": 100}'},
            {"payer": None, "amount": 50, "currency": "TWD", "split_details": {"B": 50}},
            {"payer": "B", "amount": "garbage", "split_details": ["not", "a", "map"]},
            "not a row",
            None,
        ]

        ledger = compute_ledger(rows, ["A", "B", "C"])

        assert ledger.totals == {"TWD": Decimal("350")}
        assert ledger.balances["A"] == {"TWD": Decimal("200")}
        # B: no debit from "oops", -50 from the payer-less row, +0 as payer
        assert ledger.balances["B"] == {"TWD": Decimal("-50")}
        assert ledger.balances["C"] == {"TWD": Decimal("-100")}

    def test_missing_currency_uses_default(self):
        ledger = compute_ledger(
            [{"payer": "A", "amount": 10, "split_details": {"A": 10}}],
            ["A"],
            default_currency="JPY",
        )
        assert ledger.totals == {"JPY": Decimal("10")}

    def test_names_match_roster_case_insensitively(self):
        """'alice' in an old row lands in Alice's bucket."""
        expenses = [make_expense("alice", 200, {"ALICE": 100, " bob ": 100})]

        ledger = compute_ledger(expenses, ["Alice", "Bob"])

        assert set(ledger.balances) == {"Alice", "Bob"}
        assert ledger.balances["Alice"] == {"TWD": Decimal("100")}
        assert ledger.balances["Bob"] == {"TWD": Decimal("-100")}

    def test_off_roster_spellings_share_a_bucket(self):
        """Off-roster names merge like roster names, under the first spelling."""
        expenses = [
            make_expense("guest", 90, {"A": 90}),
            make_expense("A", 30, {" GUEST ": 30}),
        ]
        ledger = compute_ledger(expenses, ["A"])

        assert set(ledger.balances) == {"A", "guest"}
        assert ledger.balance_of("guest", "TWD") == Decimal("60")
        assert ledger.balance_of("A", "TWD") == Decimal("-60")

    def test_input_is_not_mutated(self):
        expense = make_expense("A", 100, {"B": 100})
        before = expense.model_dump()
        compute_ledger([expense], ["A", "B"])
        assert expense.model_dump() == before


class TestRoster:
    """Tests for roster name resolution."""

    def test_exact_match_wins(self):
        roster = Roster(["Alice", "Bob"])
        assert roster.resolve("Alice") == "Alice"

    def test_casefold_fallback(self):
        roster = Roster(["Alice"])
        assert roster.resolve("  ALICE ") == "Alice"
        assert "alice" in roster

    def test_unknown_name_keeps_own_text(self):
        roster = Roster(["Alice"])
        assert roster.resolve(" Guest ") == "Guest"
        assert "Guest" not in roster

    def test_duplicates_and_blanks_dropped(self):
        roster = Roster(["Alice", "alice", "", "  ", "Bob"])
        assert roster.names == ["Alice", "Bob"]
        assert len(roster) == 2


class TestEqualSplit:
    """Tests for build_equal_split."""

    def test_even_split(self):
        assert build_equal_split(Decimal("300"), ["A", "B", "C"]) == {
            "A": Decimal("100"),
            "B": Decimal("100"),
            "C": Decimal("100"),
        }

    def test_uneven_split_is_not_rounded(self):
        split = build_equal_split(100, ["A", "B", "C"])
        assert split["A"] == Decimal(100) / 3
        assert round_for_display(sum(split.values())) == 100

    def test_duplicates_collapse(self):
        assert build_equal_split(100, ["A", " A ", "B"]) == {"A": Decimal("50"), "B": Decimal("50")}

    def test_nobody_involved_raises(self):
        with pytest.raises(ValueError):
            build_equal_split(100, [])
        with pytest.raises(ValueError):
            build_equal_split(100, ["  "])


class TestPresentation:
    """Tests for rounding and the balance card."""

    def test_round_half_up(self):
        assert round_for_display(Decimal("2.5")) == 3
        assert round_for_display(Decimal("3.5")) == 4
        assert round_for_display(Decimal("2.49")) == 2
        assert round_for_display(Decimal("-2.5")) == -3
        assert round_for_display("garbage") == 0

    def test_format_signed(self):
        assert format_signed(200) == "+200"
        assert format_signed(-100) == "-100"
        assert format_signed(Decimal("1234567.6")) == "+1,234,568"

    def test_summary_marks_settled_participants(self):
        expenses = [make_expense("A", 300, {"A": 100, "B": 100, "C": 100})]
        ledger = compute_ledger(expenses, ["A", "B", "C", "D"])

        summary = {s.name: s for s in summarize_balances(ledger, ["A", "B", "C", "D"])}

        assert summary["A"].lines[0].amount == 200
        assert summary["A"].lines[0].direction == BalanceDirection.OWED
        assert summary["B"].lines[0].amount == 100
        assert summary["B"].lines[0].direction == BalanceDirection.OWES
        assert summary["D"].is_settled

    def test_near_zero_balance_is_settled(self):
        """A balance that rounds to zero shows as settled, not +0 / -0."""
        third = Decimal(100) / 3
        expenses = [
            make_expense("A", 100, {"A": third, "B": third, "C": third}),
            make_expense("B", Decimal("66.4"), {"A": Decimal("66.4")}),
        ]
        ledger = compute_ledger(expenses, ["A", "B", "C"])

        summary = {s.name: s for s in summarize_balances(ledger, ["A", "B", "C"])}

        # A: +66.67 - 66.4 = 0.27 -> settled
        assert summary["A"].is_settled
        assert ledger.balance_of("A", "TWD") != 0

    def test_rounding_does_not_mutate_ledger(self):
        ledger = compute_ledger([make_expense("A", Decimal("10.6"), {"B": Decimal("10.6")})], ["A", "B"])
        summarize_balances(ledger, ["A", "B"])
        assert ledger.balance_of("A", "TWD") == Decimal("10.6")

    def test_off_roster_names_listed_after_roster(self):
        expenses = [
            make_expense("Guest", 50, {"A": 50}),
            make_expense("Ghost", 10, {"Ghost": 10}),
        ]
        ledger = compute_ledger(expenses, ["A", "B"])

        summary = summarize_balances(ledger, ["A", "B"])

        assert [s.name for s in summary] == ["A", "B", "Guest"]
        assert summary[2].in_roster is False

    def test_huge_legacy_amount_is_displayed(self):
        """Hand-edited rows with more digits than the decimal context still render."""
        ledger = compute_ledger(
            [{"payer": "A", "amount": "1e40", "currency": "TWD", "split_details": {"B": "1e40"}}],
            ["A", "B"],
        )

        summary = {s.name: s for s in summarize_balances(ledger, ["A", "B"])}

        assert summary["A"].lines[0].amount == 10 ** 40
        assert summary["B"].lines[0].direction == BalanceDirection.OWES
        assert round_for_display("-1e40") == -(10 ** 40)
        assert format_signed(Decimal("1e30")) == f"+{10 ** 30:,}"

    def test_convert_amount(self):
        assert convert_amount(1000, Decimal("0.21")) == 210
        assert convert_amount(5, Decimal("0.5")) == 3
        assert convert_amount("abc", Decimal("0.21")) == 0

    def test_group_expenses_by_day(self):
        base = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
        first = make_expense("A", 1, {}, created_at=base)
        second = make_expense("A", 2, {}, created_at=base + timedelta(hours=3))
        third = make_expense("A", 3, {}, created_at=base + timedelta(days=1))

        groups = group_expenses_by_day([first, third, second])

        assert [day.isoformat() for day, _ in groups] == ["2024-05-02", "2024-05-01"]
        assert [e.amount for e in groups[1][1]] == [Decimal("2"), Decimal("1")]
