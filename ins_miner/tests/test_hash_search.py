from itertools import permutations

from starknet_py.hash.transaction import TransactionHashPrefix, compute_transaction_hash
from starknet_py.hash.utils import compute_hash_on_elements

from ins_miner.mining.calls import DEFAULT_INSCRIPTION, build_ins_call, compute_call_hash, encode_execute_calldata
from ins_miner.mining.felt import FieldElement
from ins_miner.mining.hash_search import (
    INVOKE_PREIMAGE_LEN,
    PREFIX_INVOKE,
    FieldHasher,
    InvokePreimage,
    TransactionHashScanner,
    transaction_hash,
)

from .conftest import CALL_HASH, SENDER, TESTNET, blake_pair_hash


def _preimage(nonce: int = 0) -> InvokePreimage:
    return InvokePreimage(sender_address=SENDER, call_hash=CALL_HASH, chain_id=TESTNET, nonce=FieldElement(nonce))


def test_invoke_prefix_is_short_string():
    assert int(PREFIX_INVOKE) == int.from_bytes(b"invoke", "big")


def test_preimage_field_order():
    fee = FieldElement(6_000_000_000_001)
    elements = _preimage(nonce=7).elements(fee)
    assert len(elements) == INVOKE_PREIMAGE_LEN
    assert elements == [
        PREFIX_INVOKE,
        FieldElement(1),
        SENDER,
        FieldElement(0),
        CALL_HASH,
        fee,
        TESTNET,
        FieldElement(7),
    ]


def test_hash_folds_length_last():
    calls = []

    def recording(a, b):
        calls.append((a, b))
        return (a + b + 1) % 1000

    FieldHasher(recording).hash([5, 6])
    assert calls == [(0, 5), (6, 6), (13, 2)]


def test_pedersen_hash_is_deterministic_and_order_sensitive():
    hasher = FieldHasher()
    elements = [FieldElement(1), FieldElement(2), FieldElement(3)]
    first = hasher.hash(elements)
    assert hasher.hash(elements) == first
    assert hasher.hash([FieldElement(2), FieldElement(1), FieldElement(3)]) != first


def test_fast_hasher_order_sensitive_for_all_permutations():
    hasher = FieldHasher(blake_pair_hash)
    elements = [FieldElement(11), FieldElement(22), FieldElement(33)]
    digests = {hasher.hash(p) for p in permutations(elements)}
    assert len(digests) == 6


def test_scanner_digest_matches_full_transaction_hash_pedersen():
    hasher = FieldHasher()
    scanner = TransactionHashScanner(_preimage(nonce=3), hasher)
    for fee in (6_000_000_000_001, 6_000_000_065_537):
        assert scanner.digest(fee) == int(transaction_hash(_preimage(nonce=3), fee, hasher))


def test_scanner_digest_matches_full_transaction_hash_fast():
    hasher = FieldHasher(blake_pair_hash)
    scanner = TransactionHashScanner(_preimage(), hasher)
    for fee in range(100, 200):
        assert scanner.digest(fee) == int(transaction_hash(_preimage(), fee, hasher))


def test_fee_changes_digest():
    hasher = FieldHasher(blake_pair_hash)
    scanner = TransactionHashScanner(_preimage(), hasher)
    assert scanner.digest(1) != scanner.digest(2)


def test_transaction_hash_agrees_with_starknet_py():
    call = build_ins_call(0x00AA1A2C83C25CB981A97E05B9A47BBF660B768EEAB2F227677FD6E63614EE3, 1, DEFAULT_INSCRIPTION)
    calldata = encode_execute_calldata([call])
    call_hash = compute_call_hash([call])
    assert int(call_hash) == compute_hash_on_elements([int(x) for x in calldata])

    preimage = InvokePreimage(sender_address=SENDER, call_hash=call_hash, chain_id=TESTNET, nonce=FieldElement(9))
    fee = 6_000_000_065_537
    expected = compute_transaction_hash(
        tx_hash_prefix=TransactionHashPrefix.INVOKE,
        version=1,
        contract_address=int(SENDER),
        entry_point_selector=0,
        calldata=[int(x) for x in calldata],
        max_fee=fee,
        chain_id=int(TESTNET),
        additional_data=[9],
    )
    assert int(transaction_hash(preimage, fee)) == expected
    assert TransactionHashScanner(preimage, FieldHasher()).digest(fee) == expected
