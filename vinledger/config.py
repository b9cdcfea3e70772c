"""Configuration: env, JSON-RPC endpoint, contract address, confirmation policy."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Base paths (project root = parent of vinledger package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so VINLEDGER_RPC_URL etc. are set
load_dotenv(BASE_DIR / ".env")

# API
API_HOST = os.getenv("VINLEDGER_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("VINLEDGER_API_PORT", "8000"))
API_RELOAD = os.getenv("VINLEDGER_API_RELOAD", "").lower() in ("1", "true", "yes")

# Ledger node (JSON-RPC). The node signs with its own managed account.
RPC_URL = os.getenv("VINLEDGER_RPC_URL", "http://127.0.0.1:8545")
RPC_TIMEOUT_SEC = float(os.getenv("VINLEDGER_RPC_TIMEOUT_SEC", "10"))
CONTRACT_ADDRESS = os.getenv(
    "VINLEDGER_CONTRACT_ADDRESS", "0x5381ffb9843842376f19cb2e14857dae9e39e192"
)
# Empty = node's default account (eth_accounts[0])
SENDER_ADDRESS = os.getenv("VINLEDGER_SENDER_ADDRESS", "")

# Confirmation wait: a pending transaction is reported failed after this long
CONFIRMATION_TIMEOUT_SEC = float(os.getenv("VINLEDGER_CONFIRMATION_TIMEOUT_SEC", "120"))
RECEIPT_POLL_SEC = float(os.getenv("VINLEDGER_RECEIPT_POLL_SEC", "0.5"))

# Client-side sanity checks
MIN_RECORD_YEAR = 1886  # first automobile
MAX_RECORD_YEAR = 65535  # ledger stores year as uint16
