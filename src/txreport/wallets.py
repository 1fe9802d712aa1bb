"""
Wallet provisioning: make sure the configured wallets exist and are loaded.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from txreport.errors import RpcError
from txreport.models import WalletHandle, WalletStatus
from txreport.rpc import RpcClient


class WalletProvisioner:
    """
    Loads or creates named wallets, idempotently.

    Load/create failures are logged and reported through the returned handle
    instead of raised; later wallet-scoped calls fail loudly if the wallet is
    really missing. Transport errors are not caught.
    """

    def __init__(self, rpc: RpcClient):
        self.rpc = rpc

    def provision(self, wallet_names: Sequence[str]) -> list[WalletHandle]:
        handles = [self.ensure_wallet(name) for name in wallet_names]
        logger.info(f"Loaded wallets: {self.rpc.list_wallets()}")
        return handles

    def ensure_wallet(self, name: str) -> WalletHandle:
        if name in self.rpc.list_wallets():
            logger.info(f"Wallet '{name}' is already loaded")
            return WalletHandle(name=name, loaded=True, status=WalletStatus.ALREADY_LOADED)

        on_disk = self._exists_on_disk(name)
        if on_disk is None:
            # No existence probe available: try load, then create
            return self._load(name) or self._create(name)
        if not on_disk:
            return self._create(name)

        handle = self._load(name)
        if handle is None:
            logger.error(f"Wallet '{name}' exists on disk but failed to load")
            return WalletHandle(name=name, loaded=False, status=WalletStatus.FAILED)
        return handle

    def _exists_on_disk(self, name: str) -> bool | None:
        """Probe the wallet directory; None if the node cannot list it."""
        try:
            return name in self.rpc.list_wallet_dir()
        except RpcError as e:
            logger.debug(f"listwalletdir unavailable, falling back to load/create: {e}")
            return None

    def _load(self, name: str) -> WalletHandle | None:
        try:
            self.rpc.load_wallet(name)
        except RpcError as e:
            logger.warning(f"Wallet '{name}' could not be loaded: {e.message}")
            return None
        logger.info(f"Wallet '{name}' loaded")
        return WalletHandle(name=name, loaded=True, status=WalletStatus.LOADED)

    def _create(self, name: str) -> WalletHandle:
        try:
            self.rpc.create_wallet(name)
        except RpcError as e:
            logger.error(f"Wallet '{name}' create error: {e.message}")
            return WalletHandle(name=name, loaded=False, status=WalletStatus.FAILED)
        logger.info(f"Wallet '{name}' created")
        return WalletHandle(name=name, loaded=True, status=WalletStatus.CREATED)
