from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class Settings:
    base_url: str
    username: str
    password: str
    timeout_s: float
    protocol: str
    root_data_dir: str
    test_tag: str


def get_settings() -> Settings:
    """
    Centralized configuration for the clients, the flows and the tests.
    Values come from environment variables with safe defaults.
    """
    return Settings(
        base_url=os.getenv("SNMPSIM_HTTP", "http://127.0.0.1:8080/"),
        username=os.getenv("SNMPSIM_USERNAME", ""),
        password=os.getenv("SNMPSIM_PASSWORD", ""),
        timeout_s=float(os.getenv("SNMPSIM_TIMEOUT_S", "10.0")),
        protocol=os.getenv("SNMPSIM_PROTOCOL", "udpv4"),
        root_data_dir=os.getenv("SNMPSIM_ROOT_DATA_DIR", ""),
        test_tag=os.getenv("SNMPSIM_TEST_TAG", "snmpsim-client-test"),
    )
