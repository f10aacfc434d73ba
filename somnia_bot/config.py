"""
Configuration Management Module

Holds the static bot settings (ranges, pauses, retry policy, addresses) and
loads optional overrides from a YAML file.
"""

import os
from pathlib import Path
from typing import Dict, Any, List
from dataclasses import dataclass, asdict, field

import yaml
from .utils import ConfigurationError, logger, validate_address


DEV_RECIPIENTS = [
    "0xDA1feA7873338F34C6915A44028aA4D9aBA1346B",
    "0x018604C67a7423c03dE3057a49709aaD1D178B85",
    "0xcF8D30A5Ee0D9d5ad1D7087822bA5Bab1081FdB7",
    "0x95222290DD7278Aa3Ddd389Cc1E1d165CC4BAfe5",
]


@dataclass
class BotConfig:
    """Bot configuration settings."""

    # Network
    rpc_url: str = "https://dream-rpc.somnia.network"
    chain_id: int = 50312
    native_symbol: str = "STT"
    explorer_url: str = "https://shannon-explorer.somnia.network/tx/"

    # Token and router contracts
    ping_token: str = "0x33e7fab0a8a5da1a923180989bd617c9c2d1c493"
    pong_token: str = "0x9beaA0016c22B646Ac311Ab171270B0ECf23098F"
    router_address: str = "0x6AAC14f090A35EeA150705f72D90E4CDC4a49b2C"
    pool_fee: int = 500  # 0.05% fee tier
    token_decimals: int = 18

    # Native sender
    send_min_txs: int = 1
    send_max_txs: int = 3
    dev_chance: float = 20  # percent
    send_min_amount: float = 0.0001
    send_max_amount: float = 0.0009
    dev_recipients: List[str] = field(default_factory=lambda: list(DEV_RECIPIENTS))

    # Ping-pong swaps (whole tokens)
    swap_min_txs: int = 1
    swap_max_txs: int = 3
    swap_min_amount: int = 100
    swap_max_amount: int = 100

    # Pauses and retries
    pause_between_actions: List[float] = field(default_factory=lambda: [2, 5])
    pause_between_attempts: List[int] = field(default_factory=lambda: [5, 10])
    attempts: int = 3
    minimum_balance: float = 0.0001
    receipt_timeout: int = 120

    # Operation
    log_level: str = "INFO"
    log_file: str = "./somnia_bot.log"
    key_file: str = ".bot_wallet.enc"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BotConfig":
        """Create BotConfig from dictionary."""
        # Filter only valid fields
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**valid_fields)

    def validate(self):
        """Raise ConfigurationError if any setting is unusable."""
        ranges = {
            "send txs": (self.send_min_txs, self.send_max_txs),
            "send amount": (self.send_min_amount, self.send_max_amount),
            "swap txs": (self.swap_min_txs, self.swap_max_txs),
            "swap amount": (self.swap_min_amount, self.swap_max_amount),
        }
        for name, pair in (("pause_between_actions", self.pause_between_actions),
                           ("pause_between_attempts", self.pause_between_attempts)):
            if len(pair) != 2:
                raise ConfigurationError(f"{name} must be a [min, max] pair, got {pair}")
            ranges[name] = tuple(pair)

        for name, (low, high) in ranges.items():
            if low < 0 or high < 0:
                raise ConfigurationError(f"{name} range must be non-negative, got [{low}, {high}]")
            if low > high:
                raise ConfigurationError(f"{name} range is inverted: [{low}, {high}]")

        if self.attempts < 1:
            raise ConfigurationError(f"attempts must be at least 1, got {self.attempts}")
        if not 0 <= self.dev_chance <= 100:
            raise ConfigurationError(f"dev_chance must be within 0-100, got {self.dev_chance}")
        if self.dev_chance > 0 and not self.dev_recipients:
            raise ConfigurationError("dev_recipients is empty but dev_chance is above zero")

        addresses = [self.ping_token, self.pong_token, self.router_address, *self.dev_recipients]
        for address in addresses:
            if not validate_address(address):
                raise ConfigurationError(f"Invalid address in config: {address}")


class ConfigManager:
    """Loads and saves the YAML configuration file."""

    def __init__(self, config_path: Path = Path("./bot_config.yaml")):
        self.config_path = Path(config_path)

    def load(self) -> BotConfig:
        """Load configuration, falling back to built-in defaults when no file exists."""
        if not self.config_path.exists():
            logger.debug(f"No config file at {self.config_path}, using defaults")
            config = BotConfig()
        else:
            try:
                with open(self.config_path, 'r') as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

            if not isinstance(data, dict):
                raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")

            config = BotConfig.from_dict(data)
            logger.info(f"Configuration loaded from {self.config_path}")

        config.validate()
        return config

    def save(self, config: BotConfig):
        """Save configuration to YAML file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w') as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

        # Set restrictive permissions (owner read/write only)
        os.chmod(self.config_path, 0o600)

        logger.info(f"Configuration saved to {self.config_path}")
