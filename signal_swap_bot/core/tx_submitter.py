"""
Transaction Submitter

The only holder of the signing key. Signs aggregator-built transactions
and broadcasts them with node-side retries and no preflight simulation.
"""

import json
import logging
import os

import base58
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.keypair import Keypair  # type: ignore
from solders.pubkey import Pubkey  # type: ignore
from solders.transaction import VersionedTransaction  # type: ignore

from ..config import PRIVATE_KEY_ENV
from ..constants import BROADCAST_MAX_RETRIES, SKIP_PREFLIGHT
from ..exceptions import BroadcastFailedException, ConfigurationException

logger = logging.getLogger(__name__)


class TransactionSubmitter:
    """
    Signs with the single held key and sends raw transactions.

    The keypair is private to this object: only the public key is exposed.
    """

    __slots__ = ("client", "max_retries", "skip_preflight", "_keypair")

    def __init__(
        self,
        client: AsyncClient,
        keypair: Keypair,
        max_retries: int = BROADCAST_MAX_RETRIES,
        skip_preflight: bool = SKIP_PREFLIGHT
    ):
        self.client = client
        self.max_retries = max_retries
        self.skip_preflight = skip_preflight
        self._keypair = keypair

    @classmethod
    def from_env(cls, client: AsyncClient, env_var: str = PRIVATE_KEY_ENV, **kwargs) -> "TransactionSubmitter":
        """
        Load the secret key from the environment, once, at startup.

        Accepts base58 (Phantom export) or a JSON byte array (solana-keygen file).
        """
        secret = os.getenv(env_var, "").strip()
        if not secret:
            raise ConfigurationException(f"{env_var} not found in environment")
        try:
            if secret.startswith("["):
                key_bytes = bytes(json.loads(secret))
            else:
                key_bytes = base58.b58decode(secret)
            keypair = Keypair.from_bytes(key_bytes)
        except Exception:
            # Never echo the key material back
            raise ConfigurationException(f"{env_var} is not a valid keypair") from None
        return cls(client, keypair, **kwargs)

    @property
    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    def sign(self, unsigned_tx: bytes) -> VersionedTransaction:
        """
        Deserialize and sign an unsigned versioned transaction.

        Raises:
            BroadcastFailedException: bytes are not a transaction this key can sign
        """
        try:
            tx = VersionedTransaction.from_bytes(unsigned_tx)
            return VersionedTransaction(tx.message, [self._keypair])
        except Exception as e:
            logger.error(f"Could not sign transaction: {e}")
            raise BroadcastFailedException("Malformed or unsignable transaction", details=str(e)) from e

    async def sign_and_send(self, unsigned_tx: bytes) -> str:
        """
        Sign and broadcast.

        Args:
            unsigned_tx: Serialized transaction from the swap service

        Returns:
            Transaction signature (base58)

        Raises:
            BroadcastFailedException: signing failed or the node rejected the transaction
        """
        signed = self.sign(unsigned_tx)

        opts = TxOpts(
            skip_preflight=self.skip_preflight,
            preflight_commitment=Confirmed,
            max_retries=self.max_retries,
        )

        try:
            result = await self.client.send_raw_transaction(bytes(signed), opts=opts)
        except Exception as e:
            logger.error(f"Broadcast rejected: {e}")
            raise BroadcastFailedException("Node rejected transaction", details=str(e)) from e

        if not result or not getattr(result, "value", None):
            raise BroadcastFailedException("Node returned no signature")

        signature = str(result.value)
        logger.info(f"Transaction sent with signature: {signature}")
        return signature
