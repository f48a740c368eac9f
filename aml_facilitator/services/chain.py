"""
Async JSON-RPC client for the chain reads and writes the facilitator needs.

Thin wrapper over web3's AsyncWeb3 so the rest of the service depends on a
handful of coroutine methods (easy to fake in tests) rather than on web3.
"""
import logging
from typing import Any, Optional

from web3 import AsyncWeb3, AsyncHTTPProvider, Web3

logger = logging.getLogger("chain")

# Minimal ERC-20 surface used for balance checks and settlement
ERC20_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "transferFrom",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "sender", "type": "address"},
            {"name": "recipient", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

# Chainalysis sanctions oracle
SANCTIONS_ORACLE_ABI = [
    {
        "name": "isSanctioned",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "addr", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

# transferFrom gas limit
SETTLEMENT_GAS_LIMIT = 200_000


class ChainClient:
    """
    Chain access for one RPC endpoint.

    All methods may raise on network/RPC failure; callers decide whether a
    failure degrades, falls back, or becomes a rejected verdict.
    """

    def __init__(self, rpc_url: str, w3: Optional[AsyncWeb3] = None):
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))

    def _token(self, asset: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(asset), abi=ERC20_ABI)

    async def get_code(self, address: str) -> bytes:
        return bytes(await self.w3.eth.get_code(Web3.to_checksum_address(address)))

    async def get_transaction_count(self, address: str) -> int:
        return await self.w3.eth.get_transaction_count(Web3.to_checksum_address(address))

    async def get_balance(self, address: str) -> int:
        return await self.w3.eth.get_balance(Web3.to_checksum_address(address))

    async def token_balance_of(self, asset: str, owner: str) -> int:
        """ERC-20 balanceOf(owner) on `asset`."""
        return await self._token(asset).functions.balanceOf(
            Web3.to_checksum_address(owner)
        ).call()

    async def is_sanctioned(self, oracle_address: str, address: str) -> bool:
        """Query a sanctions oracle contract."""
        oracle = self.w3.eth.contract(
            address=Web3.to_checksum_address(oracle_address),
            abi=SANCTIONS_ORACLE_ABI,
        )
        return bool(await oracle.functions.isSanctioned(Web3.to_checksum_address(address)).call())

    async def transfer_from(self, account: Any, asset: str, sender: str, recipient: str, amount: int) -> str:
        """
        Sign and broadcast ERC-20 transferFrom(sender, recipient, amount) as `account`.

        The sender must already have approved `account` to spend on its behalf.

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        nonce = await self.w3.eth.get_transaction_count(account.address)
        tx = await self._token(asset).functions.transferFrom(
            Web3.to_checksum_address(sender),
            Web3.to_checksum_address(recipient),
            amount,
        ).build_transaction({
            "from": account.address,
            "gas": SETTLEMENT_GAS_LIMIT,
            "nonce": nonce,
        })
        signed = account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str) -> dict:
        """Block until the transaction is mined; returns the receipt."""
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
        return dict(receipt)

    def load_account(self, private_key: str):
        """Local signing account for a hex private key."""
        return self.w3.eth.account.from_key(private_key)
