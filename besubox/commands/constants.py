"""
Constants and configuration values used across the besubox codebase.
"""

# Network ports
DEFAULT_P2P_PORT = 30303
DEFAULT_RPC_PORT = 8545
HOST_RPC_PORT_OFFSET = 10000  # host port = rpc port + offset
MIN_PORT = 1024
MAX_PORT = 65535

# Ports that collide with common system services
RESERVED_PORTS = frozenset(
    {
        22,  # SSH
        25,  # SMTP
        53,  # DNS
        80,  # HTTP
        110,  # POP3
        143,  # IMAP
        443,  # HTTPS
        993,  # IMAPS
        995,  # POP3S
        1433,  # SQL Server
        1521,  # Oracle
        3306,  # MySQL
        3389,  # RDP
        5432,  # PostgreSQL
        5672,  # AMQP
        6379,  # Redis
        8080,  # HTTP alternate
        9200,  # Elasticsearch
        27017,  # MongoDB
    }
)

# Chain ids of public networks
RESERVED_CHAIN_IDS = frozenset(
    {1, 3, 4, 5, 42, 56, 137, 250, 43114, 10, 42161, 8453}
)

# Subnet handling
MIN_SUBNET_MASK = 8
MAX_SUBNET_MASK = 30
ALTERNATIVE_SUBNET_BASES = [
    "172.25.0.0",
    "172.26.0.0",
    "172.27.0.0",
    "10.10.0.0",
    "10.11.0.0",
    "192.168.100.0",
    "192.168.101.0",
    "192.168.102.0",
]
RANDOM_SUBNET_ATTEMPTS = 10

# Naming
NAME_PATTERN = r"^[a-zA-Z0-9_-]+$"
ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"

# Chain parameters
MIN_GAS_LIMIT = 4712388  # 0x47E7C4
MAX_GAS_LIMIT = 100000000  # 0x5F5E100
DEFAULT_GAS_LIMIT = "0x1C9C380"  # 30,000,000
MIN_BLOCK_TIME = 1  # seconds
MAX_BLOCK_TIME = 300  # seconds
DEFAULT_BLOCK_TIME = 5  # seconds
EPOCH_LENGTH = 30000
MAX_WEI_AMOUNT = 10**24  # 1,000,000 ether
DEFAULT_PRODUCER_BALANCE = "1000000000000000000000000000000"
MAX_INITIAL_BALANCE_ETHER = 1_000_000_000
WEI_PER_ETHER = 10**18
WEI_PER_GWEI = 10**9

# Consensus limits
MAX_AUTHORITY_ROUND_SIGNERS = 10
MAX_BFT_SIGNERS = 20
MIN_BFT_VALIDATORS = 4
MAX_BFT_VALIDATORS = 100
MAX_AUTHORITY_ROUND_NODES = 20
LARGE_NETWORK_NODES = 50

# Coherence heuristics
MAX_RPC_PORT_SPAN = 1000
BALANCED_NETWORK_THRESHOLD = 10
MAX_BOOTSTRAP_RATIO = 0.5
MAX_SIGNER_RATIO = 0.6
QUERY_NODE_THRESHOLD = 20
NAMING_CONVENTION_THRESHOLD = 5
NAMING_CONVENTION_RATIO = 0.7

# Genesis extraData layout (bytes)
EXTRA_DATA_VANITY_BYTES = 32
EXTRA_DATA_SEAL_BYTES = 65
ADDRESS_BYTES = 20

# Persisted layout
DEFAULT_STORAGE_ROOT = "./networks"
STORAGE_ROOT_ENV = "BESUBOX_HOME"
DESCRIPTOR_FILE = "network-config.json"
GENESIS_FILE = "genesis.json"
NODE_CONFIG_FILE = "config.toml"
PRIVATE_KEY_FILE = "key.priv"
PUBLIC_KEY_FILE = "key.pub"
ADDRESS_FILE = "address"
ENODE_FILE = "enode"

# Docker configuration
DEFAULT_IMAGE = "hyperledger/besu:latest"
CONTAINER_DATA_MOUNT = "/data"
NETWORK_TYPE_LABEL = "besu"
CONTAINER_STOP_TIMEOUT = 10  # seconds

# Node configuration
RPC_HTTP_APIS = ["ETH", "NET", "CLIQUE", "ADMIN", "TRACE", "DEBUG", "TXPOOL", "PERM"]

# Startup and polling
NODE_SETTLE_DELAY = 2.0  # seconds between node launches
SYNC_WAIT_TIMEOUT = 30.0  # seconds
SYNC_POLL_INTERVAL = 2.0  # seconds
LIVENESS_TIMEOUT = 5.0  # seconds per node liveness check
MAX_BLOCK_SPREAD = 1

# Retry and timeout configuration
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_RETRY_BACKOFF = 2.0  # exponential backoff multiplier
DEFAULT_CONNECTION_TIMEOUT = 10.0  # seconds
DEFAULT_READ_TIMEOUT = 30.0  # seconds

# Liveness check timeouts
QUICK_CONNECTION_TIMEOUT = 3.0  # seconds
QUICK_READ_TIMEOUT = 5.0  # seconds

# Funding
DERIVATION_PATH = "m/44'/60'/0'/0"
TRANSFER_GAS_LIMIT = 21000
FALLBACK_GAS_PRICE_GWEI = 20
FUNDED_THRESHOLD_WEI = 10**17  # 0.1 ether
DEFAULT_FUND_ACCOUNT_COUNT = 10
RECEIPT_WAIT_TIMEOUT = 60.0  # seconds
RECEIPT_POLL_INTERVAL = 1.0  # seconds
TRANSFER_PAUSE = 1.0  # seconds between transfers

# Error messages
ERROR_NETWORK_NOT_FOUND = "Network '{name}' not found in {root}"
ERROR_NODE_NOT_FOUND = "Node '{node}' not found in network '{network}'"
