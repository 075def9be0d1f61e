from decimal import Decimal

# ============================================
# MINTS
# ============================================
SOL_MINT = "So11111111111111111111111111111111111111112"   # native SOL and wrapped SOL
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

# Volatile asset is bought on bullish signals, stable asset on bearish ones
VOLATILE_MINT = SOL_MINT
STABLE_MINT = USDC_MINT

SOL_DECIMALS = 9
USDC_DECIMALS = 6
LAMPORTS_PER_SOL = 10 ** SOL_DECIMALS

# ============================================
# API ENDPOINTS
# ============================================
JUPITER_BASE_URL = "https://quote-api.jup.ag/v6"
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"

# ============================================
# SWAP POLICY
# ============================================
DEFAULT_SLIPPAGE_BPS = 50            # 0.5%
MAX_PRIORITY_FEE_LAMPORTS = 1_000_000
PRIORITY_LEVEL = "veryHigh"
QUOTE_TIMEOUT_SECONDS = 15
SWAP_BUILD_TIMEOUT_SECONDS = 30

# ============================================
# SIGNAL POLICY
# ============================================
NATIVE_RESERVE_SOL = Decimal("0.01")  # always left behind for future network fees

# ============================================
# BROADCAST / CONFIRMATION
# ============================================
BROADCAST_MAX_RETRIES = 2
SKIP_PREFLIGHT = True
CONFIRM_POLL_INTERVAL_SECONDS = 3.0
CONFIRM_MAX_ATTEMPTS = 10

# ============================================
# HISTORY / CLASSIFIER
# ============================================
FEE_ONLY_EPSILON_SOL = Decimal("0.00001")
HISTORY_DEFAULT_LIMIT = 30
HISTORY_MAX_LIMIT = 1000
HISTORY_FETCH_CONCURRENCY = 8
