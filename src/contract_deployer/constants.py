"""Configuration constants for contract-deployer library."""

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# File names inside a deployment folder
DEPLOYMENT_FILENAME = "deployment.json"
OWNER_ACTIONS_FILENAME = "owner-actions.json"
FEE_PERIODS_BACKUP_FILENAME = "recent-feePeriods-{network}-{address}.json"

# Seconds between eth_getTransactionReceipt polls
RECEIPT_POLL_INTERVAL = 2.0

# Per-request HTTP timeout for JSON-RPC calls
RPC_TIMEOUT = 30

# The first imported fee period must have started within this many seconds
FEE_PERIOD_MAX_AGE = 7 * 24 * 60 * 60

# Network configuration based on ethereum-lists/chains
NETWORK_CONFIG = {
    "mainnet": {
        "chain_id": 1,
        "chain_name": "Ethereum Mainnet",
        "block_explorer_url": "https://etherscan.io",
        "default_rpc_env": "MAINNET_RPC_URL",
    },
    "sepolia": {
        "chain_id": 11155111,
        "chain_name": "Sepolia",
        "block_explorer_url": "https://sepolia.etherscan.io",
        "default_rpc_env": "SEPOLIA_RPC_URL",
    },
    "local": {
        "chain_id": 31337,
        "chain_name": "Local development node",
        "block_explorer_url": "http://127.0.0.1:8545",
        "default_rpc_env": "LOCAL_RPC_URL",
        "default_rpc_url": "http://127.0.0.1:8545",
    },
}

# Environment variable holding the node-managed account used to sign
ACCOUNT_ENV = "DEPLOYER_ACCOUNT"
