"""
Database schema for the trade lifecycle.

Each entry is (version, name, up_sql, down_sql) and is applied by
``MigrationManager.migrate_to_latest``.
"""

CREATE_PORTFOLIOS = """
CREATE TABLE IF NOT EXISTS portfolios (
    id UUID PRIMARY KEY,
    user_id UUID NOT NULL,
    name VARCHAR(100) NOT NULL DEFAULT 'Default Portfolio',
    balance NUMERIC(20, 8) NOT NULL DEFAULT 0 CHECK (balance >= 0),
    demo_balance NUMERIC(20, 8) NOT NULL DEFAULT 0 CHECK (demo_balance >= 0),
    total_realized_pnl NUMERIC(20, 8) NOT NULL DEFAULT 0,
    is_default BOOLEAN NOT NULL DEFAULT TRUE,
    version INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE
);

CREATE UNIQUE INDEX IF NOT EXISTS uq_portfolios_default_per_user
ON portfolios(user_id) WHERE is_default;
"""

CREATE_TRADES = """
CREATE TABLE IF NOT EXISTS trades (
    id UUID PRIMARY KEY,
    user_id UUID NOT NULL,
    portfolio_id UUID NOT NULL REFERENCES portfolios(id) ON DELETE RESTRICT,
    symbol VARCHAR(20) NOT NULL,
    direction VARCHAR(4) NOT NULL CHECK (direction IN ('buy', 'sell')),
    status VARCHAR(10) NOT NULL
        CHECK (status IN ('pending', 'active', 'completed', 'cancelled')),
    entry_price NUMERIC(20, 8) NOT NULL CHECK (entry_price > 0),
    exit_price NUMERIC(20, 8),
    quantity NUMERIC(28, 12) NOT NULL CHECK (quantity > 0),
    leverage NUMERIC(10, 4) NOT NULL DEFAULT 1 CHECK (leverage >= 1),
    amount NUMERIC(20, 8) NOT NULL CHECK (amount > 0),
    stop_loss NUMERIC(20, 8),
    take_profit NUMERIC(20, 8),
    realized_pnl NUMERIC(20, 8),
    is_demo BOOLEAN NOT NULL,
    ai_recommended BOOLEAN NOT NULL DEFAULT FALSE,
    expires_at TIMESTAMP WITH TIME ZONE,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
    closed_at TIMESTAMP WITH TIME ZONE,
    CONSTRAINT trades_close_fields CHECK (
        (status = 'completed'
            AND exit_price IS NOT NULL AND realized_pnl IS NOT NULL AND closed_at IS NOT NULL)
        OR (status IN ('pending', 'active')
            AND exit_price IS NULL AND realized_pnl IS NULL AND closed_at IS NULL)
        OR status = 'cancelled'
    )
);

CREATE INDEX IF NOT EXISTS idx_trades_user_status ON trades(user_id, status);
CREATE INDEX IF NOT EXISTS idx_trades_active_expiry
ON trades(expires_at) WHERE status = 'active' AND expires_at IS NOT NULL;
"""

CREATE_TRANSACTIONS = """
CREATE TABLE IF NOT EXISTS transactions (
    id UUID PRIMARY KEY,
    user_id UUID NOT NULL,
    portfolio_id UUID NOT NULL REFERENCES portfolios(id) ON DELETE RESTRICT,
    type VARCHAR(10) NOT NULL CHECK (type IN ('deposit', 'withdrawal')),
    amount NUMERIC(20, 8) NOT NULL CHECK (amount > 0),
    method VARCHAR(20) NOT NULL DEFAULT 'DANA',
    status VARCHAR(10) NOT NULL
        CHECK (status IN ('pending', 'processing', 'success', 'failed')),
    is_demo BOOLEAN NOT NULL,
    reference_id VARCHAR(64) NOT NULL UNIQUE,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
    completed_at TIMESTAMP WITH TIME ZONE
);

CREATE INDEX IF NOT EXISTS idx_transactions_user_created
ON transactions(user_id, created_at DESC);
"""

CREATE_TRADE_LEASES = """
CREATE TABLE IF NOT EXISTS trade_leases (
    trade_id UUID PRIMARY KEY REFERENCES trades(id) ON DELETE CASCADE,
    owner VARCHAR(200) NOT NULL,
    expires_at TIMESTAMP WITH TIME ZONE NOT NULL
);
"""

MIGRATIONS: list[tuple[str, str, str, str]] = [
    ("001", "create_portfolios", CREATE_PORTFOLIOS, "DROP TABLE IF EXISTS portfolios;"),
    ("002", "create_trades", CREATE_TRADES, "DROP TABLE IF EXISTS trades;"),
    ("003", "create_transactions", CREATE_TRANSACTIONS, "DROP TABLE IF EXISTS transactions;"),
    ("004", "create_trade_leases", CREATE_TRADE_LEASES, "DROP TABLE IF EXISTS trade_leases;"),
]
