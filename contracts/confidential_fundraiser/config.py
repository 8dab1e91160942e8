"""
Configuration for the Confidential Fundraiser.

Settings come from the environment, with a `.env` file loaded first.

Environment variables:
- ALGOD_SERVER: Algorand node URL
- ALGOD_TOKEN: Algorand node token
- ESCROW_MNEMONIC: 25-word mnemonic of the escrow account holding funds
- FUNDRAISER_APP_ID: Application id the fundraiser address is derived from
- LOG_LEVEL: Logging level name
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from algosdk import logic
from algosdk.v2client import algod


@dataclass(frozen=True)
class Settings:
    algod_server: str = "http://localhost:4001"
    algod_token: str = "a" * 64
    escrow_mnemonic: Optional[str] = None
    app_id: int = 1
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from the nearest `.env` and the process environment."""
        load_dotenv(find_dotenv(usecwd=True))
        return cls(
            algod_server=os.getenv("ALGOD_SERVER", cls.algod_server),
            algod_token=os.getenv("ALGOD_TOKEN", cls.algod_token),
            escrow_mnemonic=os.getenv("ESCROW_MNEMONIC") or None,
            app_id=int(os.getenv("FUNDRAISER_APP_ID", str(cls.app_id))),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )

    @property
    def contract_address(self) -> str:
        """Address the fundraiser is identified by."""
        return logic.get_application_address(self.app_id)


def get_algod_client(settings: Settings) -> algod.AlgodClient:
    """Create Algorand client from settings."""
    return algod.AlgodClient(settings.algod_token, settings.algod_server)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
