"""
Chain Client Module

Narrow async interface over the RPC endpoint for one signing account:
native balance and transfers, ERC20 balanceOf/allowance/approve and the
router's single-hop exactInputSingle swap. Every write is signed locally,
submitted, and awaited until its receipt arrives.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any

from aiohttp import ClientTimeout
from web3 import AsyncWeb3, AsyncHTTPProvider
from eth_account import Account
from eth_account.signers.local import LocalAccount

from .config import BotConfig
from .utils import TransactionError, logger


# ERC20 Token ABI (minimal)
ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "payable": False,
        "stateMutability": "view",
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [
            {"name": "_owner", "type": "address"},
            {"name": "_spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "payable": False,
        "stateMutability": "view",
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_spender", "type": "address"},
            {"name": "_value", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "payable": False,
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

# SwapRouter02 exactInputSingle (no deadline field)
SWAP_ROUTER_ABI = [
    {
        "inputs": [
            {
                "components": [
                    {"internalType": "address", "name": "tokenIn", "type": "address"},
                    {"internalType": "address", "name": "tokenOut", "type": "address"},
                    {"internalType": "uint24", "name": "fee", "type": "uint24"},
                    {"internalType": "address", "name": "recipient", "type": "address"},
                    {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountOutMinimum", "type": "uint256"},
                    {"internalType": "uint160", "name": "sqrtPriceLimitX96", "type": "uint160"}
                ],
                "internalType": "struct IV3SwapRouter.ExactInputSingleParams",
                "name": "params",
                "type": "tuple"
            }
        ],
        "name": "exactInputSingle",
        "outputs": [{"internalType": "uint256", "name": "amountOut", "type": "uint256"}],
        "stateMutability": "payable",
        "type": "function"
    }
]


@dataclass
class TxOutcome:
    """Result of a submitted transaction."""
    success: bool
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None


class ChainClient:
    """
    Handles all RPC reads and writes for the bot's single account.
    """

    def __init__(self, web3: AsyncWeb3, account: LocalAccount, config: BotConfig):
        self.web3 = web3
        self.account = account
        self.config = config
        self.router_address = AsyncWeb3.to_checksum_address(config.router_address)
        self.router = web3.eth.contract(address=self.router_address, abi=SWAP_ROUTER_ABI)
        self._tokens: Dict[str, Any] = {}

    @classmethod
    def connect(cls, config: BotConfig, private_key: str, timeout: int = 30) -> "ChainClient":
        """Build a client for the configured RPC endpoint."""
        web3 = AsyncWeb3(AsyncHTTPProvider(config.rpc_url, request_kwargs={"timeout": ClientTimeout(total=timeout)}))
        account = Account.from_key(private_key)
        return cls(web3, account, config)

    @property
    def address(self) -> str:
        return self.account.address

    @staticmethod
    def new_recipient() -> str:
        """Fresh throwaway address."""
        return Account.create().address

    def explorer_link(self, tx_hash: str) -> str:
        return f"{self.config.explorer_url}{tx_hash}"

    def _token(self, token_address: str):
        address = AsyncWeb3.to_checksum_address(token_address)
        if address not in self._tokens:
            self._tokens[address] = self.web3.eth.contract(address=address, abi=ERC20_ABI)
        return self._tokens[address]

    # Reads

    async def get_balance(self) -> int:
        """Native balance in wei."""
        return await self.web3.eth.get_balance(self.address)

    async def token_balance(self, token_address: str) -> int:
        """Raw ERC20 balance."""
        return await self._token(token_address).functions.balanceOf(self.address).call()

    async def allowance(self, token_address: str, spender: str) -> int:
        return await self._token(token_address).functions.allowance(
            self.address, AsyncWeb3.to_checksum_address(spender)
        ).call()

    # Writes

    async def send_native(self, recipient: str, value: int) -> TxOutcome:
        """Transfer ``value`` wei to ``recipient`` with an estimated gas limit."""
        tx = {
            'from': self.address,
            'to': AsyncWeb3.to_checksum_address(recipient),
            'value': value,
            'chainId': self.config.chain_id,
        }
        tx['gas'] = await self.web3.eth.estimate_gas(tx)
        return await self._submit(tx, "Tx")

    async def approve(self, token_address: str, spender: str, amount: int) -> TxOutcome:
        """Approve exactly ``amount`` for ``spender``."""
        fn = self._token(token_address).functions.approve(
            AsyncWeb3.to_checksum_address(spender), amount
        )
        tx = await self._build(fn)
        return await self._submit(tx, "Approve Tx")

    async def exact_input_single(self, token_in: str, token_out: str, amount_in: int) -> TxOutcome:
        """
        Single-hop swap of ``amount_in`` of ``token_in``.

        amountOutMinimum is zero, so the swap has no slippage protection.
        """
        params = {
            'tokenIn': AsyncWeb3.to_checksum_address(token_in),
            'tokenOut': AsyncWeb3.to_checksum_address(token_out),
            'fee': self.config.pool_fee,
            'recipient': self.address,
            'amountIn': amount_in,
            'amountOutMinimum': 0,
            'sqrtPriceLimitX96': 0,
        }
        tx = await self._build(self.router.functions.exactInputSingle(params))
        return await self._submit(tx, "Swap Tx")

    async def _build(self, fn) -> Dict[str, Any]:
        gas = await fn.estimate_gas({'from': self.address})
        return await fn.build_transaction({
            'from': self.address,
            'chainId': self.config.chain_id,
            'gas': gas,
        })

    async def _submit(self, tx: Dict[str, Any], label: str) -> TxOutcome:
        """Sign, send and wait for the receipt."""
        tx['nonce'] = await self.web3.eth.get_transaction_count(self.address)
        if 'gasPrice' not in tx and 'maxFeePerGas' not in tx:
            tx['gasPrice'] = await self.web3.eth.gas_price

        signed = self.account.sign_transaction(tx)
        tx_hash = self.web3.to_hex(await self.web3.eth.send_raw_transaction(signed.raw_transaction))
        logger.info(f"{label} sent: {tx_hash}")

        receipt = await self.web3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.config.receipt_timeout
        )
        if receipt['status'] != 1:
            raise TransactionError(f"{label} reverted: {tx_hash}")

        logger.info(f"{label} confirmed: {self.explorer_link(tx_hash)}")
        return TxOutcome(
            success=True,
            tx_hash=tx_hash,
            block_number=receipt['blockNumber'],
            gas_used=receipt['gasUsed'],
        )
