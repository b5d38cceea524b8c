# con_reentrant_burn_token.py
I = importlib

balances = Hash(default_value=0)
metadata = Hash()

re_entry_owner = Variable() # To control sensitive operations

# Re-entrancy specific state
re_entry_target_pile_name = Variable()
re_entry_on_refund = Variable() # Re-enter refund() while the pile pays out
re_entry_burn_amount = Variable() # Re-enter burn() while the pile pulls a burn
re_entry_attempt_count = Variable()
re_entry_max_attempts = Variable()

@construct
def seed(initial_supply: int):
    balances[ctx.caller] = initial_supply
    metadata['total_supply'] = initial_supply
    re_entry_attempt_count.set(0)
    re_entry_max_attempts.set(1) # Only re-enter once
    re_entry_on_refund.set(False)
    re_entry_burn_amount.set(0)
    re_entry_owner.set(ctx.caller)

@export
def configure_re_entrancy(pile_name: str, on_refund: bool, burn_amount: int):
    assert ctx.caller == re_entry_owner.get(), "Only owner can configure re-entrancy."
    re_entry_target_pile_name.set(pile_name)
    re_entry_on_refund.set(on_refund)
    re_entry_burn_amount.set(burn_amount)
    re_entry_attempt_count.set(0)

    # The re-entrant burn is pulled from this contract's own balance
    if burn_amount > 0 and pile_name:
        balances[ctx.this, pile_name] = burn_amount

def can_re_enter():
    return re_entry_target_pile_name.get() and \
        re_entry_attempt_count.get() < re_entry_max_attempts.get()

@export
def transfer(amount: int, to: str):
    assert amount > 0, "Transfer amount must be positive"
    sender = ctx.caller

    sender_bal = balances[sender]
    assert sender_bal >= amount, f"Insufficient balance for sender {sender}"

    balances[sender] = sender_bal - amount
    balances[to] += amount

    # --- RE-ENTRANCY LOGIC FOR REFUND ---
    # The pile is paying out, call back into refund() before it finishes
    if can_re_enter() and re_entry_on_refund.get() and sender == re_entry_target_pile_name.get():
        re_entry_attempt_count.set(re_entry_attempt_count.get() + 1)
        pile = I.import_module(re_entry_target_pile_name.get())
        pile.refund()

    return True

@export
def approve(amount: int, to: str):
    assert amount >= 0, "Approve amount must be non-negative"
    balances[ctx.caller, to] = amount
    return True

@export
def transfer_from(amount: int, to: str, main_account: str):
    assert amount > 0, "Transfer amount must be positive"
    spender = ctx.caller

    owner_balance = balances[main_account]
    assert owner_balance >= amount, f"Insufficient balance for owner {main_account}"

    spender_allowance = balances[main_account, spender]
    assert spender_allowance >= amount, f"Insufficient allowance for spender {spender} from owner {main_account}"

    balances[main_account] = owner_balance - amount
    balances[main_account, spender] = spender_allowance - amount
    balances[to] += amount

    # --- RE-ENTRANCY LOGIC FOR BURN ---
    burn_amount = re_entry_burn_amount.get()
    if can_re_enter() and burn_amount > 0 and spender == re_entry_target_pile_name.get():
        re_entry_attempt_count.set(re_entry_attempt_count.get() + 1)
        pile = I.import_module(re_entry_target_pile_name.get())
        pile.burn(amount=burn_amount)

    return True

@export
def balance_of(address: str):
    return balances[address]
