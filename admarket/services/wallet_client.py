"""Client for the wallet that holds the reward keys.

Talks to a BRC-100 wallet over its JSON HTTP interface (the SDK's
``HTTPWalletJSON`` substrate). Without a wallet URL it runs a local wallet
over the server private key: keys are derived for real, but actions are
assembled without funding inputs or signatures.
"""

import asyncio
import logging
import secrets

from bsv import PrivateKey, Transaction, TransactionOutput
from bsv.script import Script
from bsv.wallet import ProtoWallet
from bsv.wallet.substrates.http_wallet_json import HTTPWalletJSON

from admarket.overlay.bundles import to_atomic_beef

logger = logging.getLogger(__name__)


class WalletError(RuntimeError):
    """Raised when the wallet rejects a call or cannot be reached."""


class WalletClient:
    def __init__(
        self,
        base_url: str = "",
        originator: str = "admarket",
        private_key: str = "",
        substrate: HTTPWalletJSON | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.originator = originator
        self._remote = substrate
        self._local: ProtoWallet | None = None
        if self._remote is None and self.base_url:
            self._remote = HTTPWalletJSON(originator, base_url=self.base_url)
        if self._remote is None:
            root_key = PrivateKey.from_hex(private_key) if private_key else PrivateKey()
            self._local = ProtoWallet(root_key, permission_callback=lambda action: True)
        logger.info("Wallet client ready (mode=%s)", "local" if self.is_local else self.base_url or "remote")

    @property
    def is_local(self) -> bool:
        return self._local is not None

    async def get_public_key(
        self,
        *,
        identity_key: bool = False,
        protocol_id: tuple[int, str] | None = None,
        key_id: str | None = None,
        counterparty: str | None = None,
    ) -> str:
        """Return a compressed public key as hex."""
        if identity_key:
            args: dict = {"identityKey": True}
        else:
            if protocol_id is None or key_id is None:
                raise ValueError("protocol_id and key_id are required for derived keys")
            args = {"protocolID": list(protocol_id), "keyID": key_id}
            if counterparty:
                args["counterparty"] = counterparty

        if self._local is not None:
            result = self._local.get_public_key(args, self.originator)
        else:
            result = await self._call("get_public_key", args)
        if result.get("error"):
            raise WalletError(str(result["error"]))
        public_key = result.get("publicKey")
        if not public_key:
            raise WalletError("Wallet returned no public key")
        return public_key

    async def create_action(
        self,
        description: str,
        outputs: list[dict],
        options: dict | None = None,
    ) -> dict:
        """Ask the wallet to fund, sign and return a transaction.

        Returns ``{"txid": str, "tx": bytes}`` with ``tx`` in atomic BEEF.
        """
        if self._local is not None:
            return self._local_action(outputs)

        args: dict = {"description": description, "outputs": outputs}
        if options:
            args["options"] = options
        result = await self._call("create_action", args)
        tx = result.get("tx")
        if not tx:
            raise WalletError("Wallet did not return a transaction")
        return {"txid": result.get("txid", ""), "tx": bytes(tx)}

    async def aclose(self) -> None:
        if self._remote is not None:
            self._remote.http_client.close()

    async def _call(self, method: str, args: dict) -> dict:
        # The substrate is blocking; keep it off the event loop
        try:
            return await asyncio.to_thread(getattr(self._remote, method), None, args)
        except (RuntimeError, OSError, ValueError) as exc:
            raise WalletError(f"Wallet {method} failed: {exc}") from exc

    def _local_action(self, outputs: list[dict]) -> dict:
        tx = Transaction(
            tx_outputs=[
                TransactionOutput(Script(o["lockingScript"]), int(o["satoshis"]))
                for o in outputs
            ],
            locktime=secrets.randbits(31),  # keeps unfunded txids distinct
        )
        return {"txid": tx.txid(), "tx": to_atomic_beef(tx)}
