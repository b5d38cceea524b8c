import unittest
from contracting.client import ContractingClient
from pathlib import Path

START_HEIGHT = 1000
ROUND_LENGTH = 100
ROUND_COUNT = 10
REFUND_CAP = 10
FUND_PERCENT = 50


class TestBurnPileContract(unittest.TestCase):
    def setUp(self):
        self.client = ContractingClient()
        self.client.flush() # Ensures a clean state

        # Define user accounts
        self.operator = 'sys' # The one who submits contracts, acts as owner of the pile
        self.fund = 'fund'
        self.users = ['alice', 'bob', 'charlie', 'dave', 'erin']
        self.alice = self.users[0]

        self.token_name = "con_burn_token"
        self.pile_name = "con_burn_pile"

        # Contracts live next to this file
        contracts_dir = Path(__file__).resolve().parent

        with open(contracts_dir / "con_burn_token.py") as f:
            self.client.submit(
                f.read(), name=self.token_name, signer=self.operator,
                constructor_args={"initial_supply": 1000000}
            )

        with open(contracts_dir / "con_burn_pile.py") as f:
            self.client.submit(
                f.read(), name=self.pile_name, signer=self.operator,
                constructor_args={
                    "round_length": ROUND_LENGTH,
                    "round_count": ROUND_COUNT,
                    "refund_cap": REFUND_CAP,
                    "token_contract": self.token_name,
                    "fund_percent": FUND_PERCENT,
                    "fund_address": self.fund,
                    "start_height": START_HEIGHT
                }
            )

        self.con_burn_token = self.client.get_contract(self.token_name)
        self.con_burn_pile = self.client.get_contract(self.pile_name)

    def tearDown(self):
        self.client.flush()

    def height(self, rounds=0, blocks=0):
        return START_HEIGHT + rounds * ROUND_LENGTH + blocks

    def fund_user(self, user, amount):
        self.con_burn_token.transfer(amount=amount, to=user, signer=self.operator)
        self.con_burn_token.approve(amount=amount, to=self.pile_name, signer=user)

    def burn(self, *amounts, rounds=0, blocks=0):
        # users[i] burns amounts[i], each funded and approved just before burning
        round_indexes = []
        for user, amount in zip(self.users, amounts):
            self.fund_user(user, amount)
            round_indexes.append(self.con_burn_pile.burn(
                amount=amount, signer=user,
                environment={"block_num": self.height(rounds, blocks)}
            ))
        return round_indexes

    def refund(self, user=None, rounds=0, blocks=0):
        return self.con_burn_pile.refund(
            signer=user or self.alice,
            environment={"block_num": self.height(rounds, blocks)}
        )

    def balance(self, account):
        return self.con_burn_token.balance_of(address=account)

    def events(self, output, name):
        # Indexed and plain arguments of every `name` event, merged
        return [
            {**event["data_indexed"], **event["data"]}
            for event in output["events"] if event["event"] == name
        ]

    # --- burn ---
    def test_burn_below_refund_cap(self):
        print("\n--- Test: Burn Below Refund Cap ---")
        self.burn(REFUND_CAP // 2)

        round_info = self.con_burn_pile.get_round_info(round_index=0)
        self.assertEqual(round_info["total_burned"], REFUND_CAP // 2)
        self.assertEqual(round_info["refund_cap"], REFUND_CAP)
        self.assertEqual(self.balance(self.pile_name), REFUND_CAP // 2)
        self.assertEqual(self.balance(self.fund), 0)

    def test_burn_beyond_refund_cap(self):
        print("\n--- Test: Burn Beyond Refund Cap ---")
        self.burn(REFUND_CAP * 2)

        round_info = self.con_burn_pile.get_round_info(round_index=0)
        self.assertEqual(round_info["total_burned"], REFUND_CAP * 2)
        # Half of the 10 excess goes to the fund, the other half stays in the pile
        self.assertEqual(self.balance(self.fund), 5)
        self.assertEqual(self.balance(self.pile_name), 15)

    def test_burn_from_multiple_users_beyond_refund_cap(self):
        print("\n--- Test: Burn From Multiple Users Beyond Refund Cap ---")
        amount = REFUND_CAP // 2
        self.burn(amount, amount, amount)

        self.assertEqual(self.con_burn_pile.get_round_info(round_index=0)["total_burned"], amount * 3)
        for user in self.users[:3]:
            self.assertEqual(self.con_burn_pile.get_burned(round_index=0, account=user), amount)
        self.assertEqual(self.balance(self.fund), 2)

    def test_burn_rejected_after_the_burn_has_ended(self):
        print("\n--- Test: Burn Rejected After The Burn Has Ended ---")
        self.burn(REFUND_CAP)

        pile_balance_before = self.balance(self.pile_name)
        with self.assertRaisesRegex(AssertionError, "The burn has ended."):
            self.burn(REFUND_CAP, rounds=ROUND_COUNT)

        # No funds moved and the last round was never created
        self.assertEqual(self.balance(self.pile_name), pile_balance_before)
        self.assertEqual(self.balance(self.alice), REFUND_CAP)
        self.assertIsNone(self.con_burn_pile.get_round_info(round_index=ROUND_COUNT))

    def test_burn_accepted_in_the_last_block_of_the_last_round(self):
        print("\n--- Test: Burn Accepted In The Last Block ---")
        round_indexes = self.burn(REFUND_CAP, rounds=ROUND_COUNT - 1, blocks=ROUND_LENGTH - 1)
        self.assertEqual(round_indexes, [ROUND_COUNT - 1])

    # --- refund ---
    def test_no_refund_for_a_round_in_progress(self):
        print("\n--- Test: No Refund For A Round In Progress ---")
        self.burn(REFUND_CAP * 2)
        balance_before = self.balance(self.alice)

        self.assertEqual(self.refund(blocks=ROUND_LENGTH - 1), 0)
        self.assertEqual(self.balance(self.alice), balance_before)
        self.assertEqual(self.con_burn_pile.get_last_refunded_round(account=self.alice), -1)

    def test_refund_for_a_completed_round(self):
        print("\n--- Test: Refund For A Completed Round ---")
        self.burn(REFUND_CAP * 2)
        balance_before = self.balance(self.alice)

        self.assertEqual(self.refund(rounds=1), REFUND_CAP)
        self.assertEqual(self.balance(self.alice), balance_before + REFUND_CAP)

    def test_refund_for_a_completed_round_after_several_empty_rounds(self):
        print("\n--- Test: Refund After Several Empty Rounds ---")
        self.burn(REFUND_CAP * 2)
        balance_before = self.balance(self.alice)

        self.assertEqual(self.refund(rounds=4), REFUND_CAP)
        self.assertEqual(self.balance(self.alice), balance_before + REFUND_CAP)
        self.assertEqual(self.con_burn_pile.get_last_refunded_round(account=self.alice), 3)

    def test_full_refunds_below_the_refund_cap(self):
        print("\n--- Test: Full Refunds Below The Refund Cap ---")
        amounts = [1, 5, 1, 2]
        self.burn(*amounts)
        self.assertEqual(self.balance(self.fund), 0)

        for user, amount in zip(self.users, amounts):
            self.assertEqual(self.balance(user), 0)
            self.assertEqual(self.refund(user, rounds=5), amount)
            self.assertEqual(self.balance(user), amount)

    def test_proportional_refunds_above_the_refund_cap(self):
        print("\n--- Test: Proportional Refunds Above The Refund Cap ---")
        amounts = [REFUND_CAP * 4, REFUND_CAP // 2, REFUND_CAP // 10, REFUND_CAP * 2, REFUND_CAP]
        total = sum(amounts)
        expected_refunds = [amount * REFUND_CAP // total for amount in amounts]
        self.assertEqual(expected_refunds, [5, 0, 0, 2, 1])

        self.burn(*amounts)

        for user, expected in zip(self.users, expected_refunds):
            self.assertEqual(self.balance(user), 0)
            self.refund(user, rounds=1)
            self.assertEqual(self.balance(user), expected)

    def test_refund_after_the_end_of_the_burn(self):
        print("\n--- Test: Refund After The End Of The Burn ---")
        self.burn(REFUND_CAP * 10)
        self.assertEqual(self.balance(self.alice), 0)

        self.assertEqual(self.refund(rounds=ROUND_COUNT), REFUND_CAP)
        self.assertEqual(self.balance(self.alice), REFUND_CAP)
        self.assertEqual(self.con_burn_pile.get_last_refunded_round(account=self.alice), ROUND_COUNT - 1)

    def test_refund_for_last_round_once_the_burn_has_ended(self):
        print("\n--- Test: Refund For The Last Round ---")
        self.burn(REFUND_CAP, rounds=ROUND_COUNT - 1)

        # Long after the end every round is closed, but never beyond the last one
        self.assertEqual(self.refund(rounds=ROUND_COUNT * 3), REFUND_CAP)
        self.assertEqual(self.con_burn_pile.get_last_refunded_round(account=self.alice), ROUND_COUNT - 1)

    def test_refund_for_previous_unrefunded_rounds(self):
        print("\n--- Test: Refund For Previous Unrefunded Rounds ---")
        burn_count = 3
        for i in range(burn_count):
            self.burn(REFUND_CAP * 10, rounds=i * 2)

        self.assertEqual(self.balance(self.alice), 0)
        self.assertEqual(self.refund(rounds=burn_count * 2), REFUND_CAP * burn_count)
        self.assertEqual(self.balance(self.alice), REFUND_CAP * burn_count)

    def test_no_refund_on_repeated_requests_without_new_burns(self):
        print("\n--- Test: No Refund On Repeated Requests ---")
        self.burn(REFUND_CAP)
        self.assertEqual(self.balance(self.alice), 0)

        self.assertEqual(self.refund(rounds=1), REFUND_CAP)
        self.assertEqual(self.balance(self.alice), REFUND_CAP)

        self.assertEqual(self.refund(rounds=1), 0)
        self.assertEqual(self.balance(self.alice), REFUND_CAP)

        self.assertEqual(self.refund(rounds=2), 0)
        self.assertEqual(self.con_burn_pile.get_last_refunded_round(account=self.alice), 1)

        self.assertEqual(self.refund(rounds=5), 0)
        self.assertEqual(self.balance(self.alice), REFUND_CAP)
        self.assertEqual(self.con_burn_pile.get_last_refunded_round(account=self.alice), 4)

    # --- fund ---
    def test_half_of_the_excess_goes_to_the_fund(self):
        print("\n--- Test: Half Of The Excess Goes To The Fund ---")
        amount = REFUND_CAP * 3
        self.burn(amount)
        self.assertEqual(self.balance(self.fund), (amount - REFUND_CAP) // 2)

    def test_half_of_the_excess_from_multiple_users_goes_to_the_fund(self):
        print("\n--- Test: Half Of The Excess From Multiple Users Goes To The Fund ---")
        amounts = [REFUND_CAP, REFUND_CAP * 2, REFUND_CAP // 2, REFUND_CAP]
        self.burn(*amounts)
        self.assertEqual(self.balance(self.fund), (sum(amounts) - REFUND_CAP) // 2)

    def test_nothing_goes_to_the_fund_at_or_below_the_cap(self):
        print("\n--- Test: Nothing Goes To The Fund At Or Below The Cap ---")
        self.burn(REFUND_CAP)
        self.assertEqual(self.balance(self.fund), 0)

        self.burn(REFUND_CAP // 2, rounds=1)
        self.assertEqual(self.balance(self.fund), 0)

        self.refund(rounds=3)
        self.assertEqual(self.balance(self.fund), 0)
        self.assertEqual(self.balance(self.alice), REFUND_CAP + REFUND_CAP // 2)

    # --- burn/refund results ---
    def test_burn_reports_its_round(self):
        print("\n--- Test: Burn Reports Its Round ---")
        amount = REFUND_CAP * 2
        self.assertEqual(self.burn(amount), [0])
        self.assertEqual(self.burn(amount, rounds=1), [1])
        self.assertEqual(self.con_burn_pile.get_round_info(round_index=1)["refund_cap"], REFUND_CAP)

    def test_multi_round_refund_is_paid_at_once(self):
        print("\n--- Test: Multi Round Refund Is Paid At Once ---")
        amount = REFUND_CAP * 2
        for round_index in [0, 1, 3]:
            self.burn(amount, rounds=round_index)

        balance_before = self.balance(self.alice)
        self.assertEqual(self.refund(rounds=6), REFUND_CAP * 3)
        self.assertEqual(self.balance(self.alice), balance_before + REFUND_CAP * 3)

    # --- events ---
    def test_burn_event(self):
        print("\n--- Test: Burn Event ---")
        amount = REFUND_CAP * 2

        self.fund_user(self.alice, amount)
        output = self.con_burn_pile.burn(
            amount=amount, signer=self.alice,
            environment={"block_num": self.height()}, return_full_output=True
        )
        self.assertEqual(self.events(output, "burn"), [
            {"account": self.alice, "amount": amount, "refund_cap": REFUND_CAP, "round_index": 0}
        ])

        self.fund_user(self.alice, amount)
        output = self.con_burn_pile.burn(
            amount=amount, signer=self.alice,
            environment={"block_num": self.height(rounds=1)}, return_full_output=True
        )
        self.assertEqual(self.events(output, "burn"), [
            {"account": self.alice, "amount": amount, "refund_cap": REFUND_CAP, "round_index": 1}
        ])

    def test_refund_event_for_a_single_round(self):
        print("\n--- Test: Refund Event For A Single Round ---")
        self.burn(REFUND_CAP * 2)

        output = self.con_burn_pile.refund(
            signer=self.alice, environment={"block_num": self.height(rounds=1)}, return_full_output=True
        )
        self.assertEqual(self.events(output, "refund"), [{"account": self.alice, "amount": REFUND_CAP}])

    def test_refund_event_for_multiple_rounds(self):
        print("\n--- Test: Refund Event For Multiple Rounds ---")
        # Burns in rounds 0, 1 and 3, then a gap of three rounds before claiming
        for round_index in [0, 1, 3]:
            self.burn(REFUND_CAP * 2, rounds=round_index)

        output = self.con_burn_pile.refund(
            signer=self.alice, environment={"block_num": self.height(rounds=6)}, return_full_output=True
        )
        self.assertEqual(self.events(output, "refund"), [{"account": self.alice, "amount": REFUND_CAP * 3}])

    def test_no_refund_event_when_nothing_is_refunded(self):
        print("\n--- Test: No Refund Event When Nothing Is Refunded ---")
        self.burn(REFUND_CAP)
        self.refund(rounds=1)

        output = self.con_burn_pile.refund(
            signer=self.alice, environment={"block_num": self.height(rounds=1)}, return_full_output=True
        )
        self.assertEqual(self.events(output, "refund"), [])

        # The pointer moves over the empty round 1, still without an event
        output = self.con_burn_pile.refund(
            signer=self.alice, environment={"block_num": self.height(rounds=2)}, return_full_output=True
        )
        self.assertEqual(self.events(output, "refund"), [])
        self.assertEqual(self.con_burn_pile.get_last_refunded_round(account=self.alice), 1)

    def test_refund_cap_updated_event(self):
        print("\n--- Test: Refund Cap Updated Event ---")
        output = self.con_burn_pile.update_refund_cap(
            new_refund_cap=1, signer=self.operator, return_full_output=True
        )
        self.assertEqual(self.events(output, "refund_cap_updated"), [{"refund_cap": 1}])

    # --- update refund cap ---
    def test_owner_can_update_the_refund_cap(self):
        print("\n--- Test: Owner Can Update The Refund Cap ---")
        self.con_burn_pile.update_refund_cap(new_refund_cap=1000000, signer=self.operator)
        self.assertEqual(self.con_burn_pile.current_refund_cap.get(), 1000000)

    def test_non_owner_cannot_update_the_refund_cap(self):
        print("\n--- Test: Non Owner Cannot Update The Refund Cap ---")
        with self.assertRaisesRegex(AssertionError, "Only owner can update the refund cap"):
            self.con_burn_pile.update_refund_cap(new_refund_cap=1000000, signer=self.alice)
        self.assertEqual(self.con_burn_pile.current_refund_cap.get(), REFUND_CAP)

    def test_updated_refund_cap_applies_to_rounds_opened_afterwards(self):
        print("\n--- Test: Updated Refund Cap Applies To Rounds Opened Afterwards ---")
        updated_refund_cap = 1
        amount = REFUND_CAP

        self.burn(amount, rounds=0)
        self.burn(amount * 2, rounds=1)

        # Round 2 has not been touched yet, so its first burn snapshots the new cap
        self.con_burn_pile.update_refund_cap(new_refund_cap=updated_refund_cap, signer=self.operator)
        self.burn(amount * 2, rounds=2)
        self.burn(amount * 2, rounds=2, blocks=1)
        self.burn(amount, rounds=3)

        self.assertEqual(self.con_burn_pile.get_round_info(round_index=0)["refund_cap"], REFUND_CAP)
        self.assertEqual(self.con_burn_pile.get_round_info(round_index=1)["refund_cap"], REFUND_CAP)
        self.assertEqual(self.con_burn_pile.get_round_info(round_index=2)["refund_cap"], updated_refund_cap)
        self.assertEqual(self.con_burn_pile.get_round_info(round_index=3)["refund_cap"], updated_refund_cap)

        self.refund(rounds=4)
        self.assertEqual(self.balance(self.alice), (2 * REFUND_CAP) + (2 * updated_refund_cap))

    def test_updated_refund_cap_leaves_a_started_round_alone(self):
        print("\n--- Test: Updated Refund Cap Leaves A Started Round Alone ---")
        self.burn(REFUND_CAP * 2)
        self.con_burn_pile.update_refund_cap(new_refund_cap=1, signer=self.operator)
        self.burn(REFUND_CAP * 2, blocks=1)

        round_info = self.con_burn_pile.get_round_info(round_index=0)
        self.assertEqual(round_info["refund_cap"], REFUND_CAP)
        self.assertEqual(round_info["total_burned"], REFUND_CAP * 4)

        self.refund(rounds=1)
        self.assertEqual(self.balance(self.alice), REFUND_CAP)


if __name__ == '__main__':
    unittest.main()
