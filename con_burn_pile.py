I = importlib

pool_config = Hash() # round_length, round_count, start_height, token_contract, fund_percent, fund_address
metadata = Hash()
current_refund_cap = Variable() # Cap snapshotted by the next round that receives its first burn

rounds = Hash() # round_index -> {"total_burned": X, "refund_cap": Y}
burned = Hash(default_value=0) # (round_index, account) -> amount burned in that round
last_refunded_round = Hash(default_value=-1) # account -> last round index already settled

reentrancyGuardActive = Variable(default_value=False)

# Standard XSC001 (Fungible Token) interface
token_interface = [
    I.Func('transfer_from', args=('amount', 'to', 'main_account')),
    I.Func('transfer', args=('amount', 'to')),
    I.Func('balance_of', args=('address',)),
]

# Events
Burn = LogEvent(
    event="burn",
    params={
        "account": {'type':str, 'idx':True},
        "amount": {'type':int},
        "refund_cap": {'type':int}, # Cap of the round at the time of the burn
        "round_index": {'type':int, 'idx':True}
    })

Refund = LogEvent(
    event="refund",
    params={
        "account": {'type':str, 'idx':True},
        "amount": {'type':int} # Sum over every round settled by this call
    })

RefundCapUpdated = LogEvent(
    event="refund_cap_updated",
    params={
        "refund_cap": {'type':int}
    })

OwnershipTransferred = LogEvent(
    event="ownership_transferred",
    params={
        "previous_owner": {'type':str, 'idx':True},
        "new_owner": {'type':str, 'idx':True}
    })

@construct
def seed(round_length: int, round_count: int, refund_cap: int, token_contract: str,
         fund_percent: int, fund_address: str, start_height: int):
    assert round_length > 0, 'round length must be positive'
    assert round_count > 0, 'round count must be positive'
    assert refund_cap >= 0, 'refund cap cannot be negative'
    assert 0 <= fund_percent <= 100, 'fund percent must be between 0 and 100'
    assert start_height >= 0, 'start height cannot be negative'

    token = I.import_module(token_contract)
    assert I.enforce_interface(token, token_interface), 'token contract not XSC001-compliant'

    pool_config['round_length'] = round_length
    pool_config['round_count'] = round_count
    pool_config['start_height'] = start_height
    pool_config['token_contract'] = token_contract
    pool_config['fund_percent'] = fund_percent
    pool_config['fund_address'] = fund_address

    metadata['owner'] = ctx.caller
    current_refund_cap.set(refund_cap)
    reentrancyGuardActive.set(False)

# --- Clock ---
def round_index_at(height: int):
    start_height = pool_config['start_height']
    assert height >= start_height, 'The burn has not started.'
    return (height - start_height) // pool_config['round_length']

def current_round():
    return round_index_at(block_num)

def last_closed_round():
    # -1 when no round has closed yet
    if block_num < pool_config['start_height']:
        return -1

    index = current_round()
    if index >= pool_config['round_count']:
        return pool_config['round_count'] - 1
    return index - 1

# --- Refund arithmetic ---
def refundable_between(account: str, first_round: int, last_round: int):
    owed = 0
    for index in range(first_round, last_round + 1):
        round_info = rounds[index]
        if not round_info:
            continue # Nobody burned in this round

        amount = burned[index, account]
        if amount <= 0:
            continue

        total = round_info["total_burned"]
        cap = round_info["refund_cap"]
        if total <= cap:
            owed += amount
        else:
            # Truncation keeps the sum of every share at or below the cap
            owed += amount * cap // total
    return owed

@export
def burn(amount: int):
    assert not reentrancyGuardActive.get(), "Burn pile is busy, please try again."
    reentrancyGuardActive.set(True)

    assert amount > 0, 'burn amount must be positive.'
    round_index = current_round()
    assert round_index < pool_config['round_count'], 'The burn has ended.'

    token = I.import_module(pool_config['token_contract'])

    # --- INTERACTION Part 1: Pull the burned tokens into the pile ---
    token.transfer_from(
        amount=amount,
        to=ctx.this,
        main_account=ctx.caller
    )

    round_info = rounds[round_index]
    if not round_info:
        # First burn of the round fixes its cap for good
        round_info = {
            "total_burned": 0,
            "refund_cap": current_refund_cap.get()
        }

    total_before = round_info["total_burned"]
    total_after = total_before + amount
    refundable_ceiling = max(round_info["refund_cap"], total_before)

    # Only the part of this burn that lies above the cap is excess, the fund gets its percent of it
    excess = 0
    if total_after > refundable_ceiling:
        excess = total_after - refundable_ceiling
    fund_share = excess * pool_config['fund_percent'] // 100

    # --- EFFECTS ---
    round_info["total_burned"] = total_after
    rounds[round_index] = round_info
    burned[round_index, ctx.caller] += amount

    # --- INTERACTION Part 2: Forward the fund share, the rest of the excess stays in the pile ---
    if fund_share > 0:
        token.transfer(
            amount=fund_share,
            to=pool_config['fund_address']
        )

    Burn({
        "account": ctx.caller,
        "amount": amount,
        "refund_cap": round_info["refund_cap"],
        "round_index": round_index
    })

    reentrancyGuardActive.set(False)
    return round_index

@export
def refund():
    assert not reentrancyGuardActive.get(), "Burn pile is busy, please try again."
    reentrancyGuardActive.set(True)

    closed_round = last_closed_round()
    first_round = last_refunded_round[ctx.caller] + 1

    if closed_round < 0 or first_round > closed_round:
        # Nothing new to settle
        reentrancyGuardActive.set(False)
        return 0

    amount_to_refund = refundable_between(ctx.caller, first_round, closed_round)

    # --- EFFECTS ---
    # Advance even when nothing is owed so the same rounds are never walked twice
    last_refunded_round[ctx.caller] = closed_round

    # --- INTERACTION ---
    if amount_to_refund > 0:
        token = I.import_module(pool_config['token_contract'])
        token.transfer(
            amount=amount_to_refund,
            to=ctx.caller
        )

        Refund({
            "account": ctx.caller,
            "amount": amount_to_refund
        })

    reentrancyGuardActive.set(False)
    return amount_to_refund

@export
def update_refund_cap(new_refund_cap: int):
    assert not reentrancyGuardActive.get(), "Burn pile is busy, cannot update the refund cap now."
    assert ctx.caller == metadata['owner'], 'Only owner can update the refund cap!'
    assert new_refund_cap >= 0, 'refund cap cannot be negative'

    current_refund_cap.set(new_refund_cap)

    RefundCapUpdated({"refund_cap": new_refund_cap})

@export
def transfer_ownership(new_owner: str):
    assert not reentrancyGuardActive.get(), "Burn pile is busy, cannot transfer ownership now."
    previous_owner = metadata['owner']
    assert ctx.caller == previous_owner, 'Only owner can transfer ownership!'
    assert new_owner, 'new owner cannot be empty'

    metadata['owner'] = new_owner

    OwnershipTransferred({
        "previous_owner": previous_owner,
        "new_owner": new_owner
    })

# --- Helper/View functions ---
@export
def get_pool_config():
    return {
        "round_length": pool_config['round_length'],
        "round_count": pool_config['round_count'],
        "start_height": pool_config['start_height'],
        "token_contract": pool_config['token_contract'],
        "fund_percent": pool_config['fund_percent'],
        "fund_address": pool_config['fund_address'],
        "refund_cap": current_refund_cap.get()
    }

@export
def get_current_round():
    return current_round()

@export
def get_last_closed_round():
    return last_closed_round()

@export
def get_round_info(round_index: int):
    return rounds[round_index]

@export
def get_burned(round_index: int, account: str):
    return burned[round_index, account]

@export
def get_last_refunded_round(account: str):
    return last_refunded_round[account]

@export
def get_refundable(account: str):
    closed_round = last_closed_round()
    first_round = last_refunded_round[account] + 1
    if closed_round < 0 or first_round > closed_round:
        return 0
    return refundable_between(account, first_round, closed_round)
