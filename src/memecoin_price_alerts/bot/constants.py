"""Chain tables, defaults and static bot texts."""

from __future__ import annotations

DEFAULT_THRESHOLD = 5.0
MIN_THRESHOLD_EXCLUSIVE = 0.0
MAX_THRESHOLD = 100.0

# (chain id, keyboard label), in keyboard order
SUPPORTED_CHAINS: tuple[tuple[str, str], ...] = (
    ("solana", "◎ Solana"),
    ("ethereum", "Ξ Ethereum"),
    ("bsc", "⬡ BSC"),
    ("base", "🔵 Base"),
    ("arbitrum", "🔷 Arbitrum"),
    ("polygon", "⬡ Polygon"),
    ("avalanche", "🔺 Avalanche"),
    ("sui", "💧 Sui"),
    ("ton", "💎 TON"),
    ("tron", "⚡ Tron"),
)

CHAIN_IDS = frozenset(chain_id for chain_id, _ in SUPPORTED_CHAINS)

CHAIN_ALIASES: dict[str, str] = {
    "sol": "solana",
    "eth": "ethereum",
    "bsc": "bsc",
    "bnb": "bsc",
    "arb": "arbitrum",
    "arbitrum": "arbitrum",
    "polygon": "polygon",
    "matic": "polygon",
    "avax": "avalanche",
    "avalanche": "avalanche",
    "base": "base",
    "solana": "solana",
    "ethereum": "ethereum",
    "sui": "sui",
    "ton": "ton",
    "tron": "tron",
}

SUPPORTED_CHAINS_TEXT = (
    "solana (sol), ethereum (eth), bsc (bnb), arbitrum (arb), polygon, base, "
    "avalanche (avax), sui, ton, tron"
)


def resolve_chain(text: str) -> str | None:
    """Map user input such as `sol` or `ETH` to a DexScreener chain id."""
    return CHAIN_ALIASES.get(text.strip().lower())


# (command, menu description)
BOT_COMMANDS: tuple[tuple[str, str], ...] = (
    ("start", "🚀 Welcome & quick start guide"),
    ("help", "📖 Detailed help & instructions"),
    ("add", "➕ Add token to watchlist"),
    ("remove", "➖ Remove token from watchlist"),
    ("list", "📋 Show your watchlist"),
    ("price", "💰 Get current token price"),
    ("search", "🔍 Search for tokens"),
    ("threshold", "⚡ Update alert threshold"),
    ("cancel", "❌ Cancel current operation"),
)

START_MESSAGE = f"""🚀 *Welcome to Memecoin Price Alert Bot!*

I'll notify you when your tracked memecoins move in price.

*Commands:*
/add <chain> <address> [threshold] - Add token to watchlist
/remove <chain> <address> - Remove token from watchlist
/list - Show your watchlist
/price <chain> <address> - Get current price
/search <query> - Search for tokens
/threshold <chain> <address> <percent> - Update alert threshold
/help - Show detailed help

*Supported Chains:*
{SUPPORTED_CHAINS_TEXT}

*Example:*
`/add sol EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v 10`

This adds USDC on Solana with 10% move alerts."""

HELP_MESSAGE = """📖 *Detailed Help*

*Adding a Token:*
`/add <chain> <address> [threshold]`
• chain: solana, ethereum, bsc, etc.
• address: Token contract address
• threshold: Alert on X% moves (default: 5%)

*How Alerts Work:*
When you add a token, I record the current price. If the price moves up or down by your threshold percentage, I'll send you an alert. After each alert, I update the reference price to the new price, so you'll get another alert if it moves another X%.

*Example Alert Flow (5% threshold):*
1. Added at $1.00
2. Drops to $0.94 → 🔴 ALERT! (6% drop)
3. Drops to $0.89 → 🔴 ALERT! (5.3% from $0.94)
4. Rises to $0.92 → No alert
5. Drops to $0.84 → 🔴 ALERT! (5.6% from $0.89)

*Updating Threshold:*
`/threshold sol <address> 3`
Changes alert threshold to 3%

*Finding Token Address:*
Use `/search <token name>` to find addresses"""

# Plain replies
FETCHING_TOKEN = "🔍 Fetching token data..."
FETCHING_PRICE = "🔍 Fetching price data..."
FETCHING_PRICES = "🔍 Fetching current prices..."
SEARCHING = "🔍 Searching..."
TOKEN_NOT_FOUND = "❌ Token not found. Please check the chain and address."
TOKEN_WITHOUT_PRICE = "❌ No price data is available for this token right now."
ALREADY_TRACKED = "⚠️ This token is already in your watchlist."
NOT_IN_WATCHLIST = "❌ Token not found in your watchlist."
REMOVED = "✅ Token removed from your watchlist."
NO_SEARCH_RESULTS = "❌ No tokens found matching your query."
INVALID_THRESHOLD = "❌ Threshold must be a number between 0 and 100"
CANCELLED = "❌ Operation cancelled."
SESSION_EXPIRED = "⚠️ Session expired. Please start the command again."
GENERIC_ERROR = "❌ Something went wrong. Please try again later."

# Markdown replies
EMPTY_WATCHLIST = "📋 Your watchlist is empty.\n\nUse `/add <chain> <address>` to add tokens."
USAGE_ADD = "❌ Usage: `/add <chain> <address> [threshold]`\nExample: `/add sol TokenAddress 5`"
USAGE_REMOVE = "❌ Usage: `/remove <chain> <address>`"
USAGE_PRICE = "❌ Usage: `/price <chain> <address>`"
USAGE_SEARCH = "❌ Usage: `/search <token name or symbol>`"
USAGE_THRESHOLD = (
    "❌ Usage: `/threshold <chain> <address> <percent>`\n"
    "Example: `/threshold sol TokenAddress 3`"
)


def unknown_chain_message(chain_input: str) -> str:
    return f"❌ Unknown chain: {chain_input}\n\nSupported: {SUPPORTED_CHAINS_TEXT}"
