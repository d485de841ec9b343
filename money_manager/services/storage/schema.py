"""
SQLite schema for the ledger.

Money columns are TEXT holding Decimal strings so that balances round-trip
exactly. Dates are YYYY-MM-DD keys; timestamps are ISO-8601.
"""

SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  type TEXT NOT NULL,
  balance TEXT NOT NULL DEFAULT '0',
  credit_limit TEXT,
  icon TEXT,
  color TEXT,
  is_active INTEGER NOT NULL DEFAULT 1,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS categories (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  type TEXT NOT NULL,
  icon TEXT,
  color TEXT,
  is_system INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS goals (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  target_amount TEXT NOT NULL,
  saved_amount TEXT NOT NULL DEFAULT '0',
  target_date TEXT,
  priority INTEGER NOT NULL DEFAULT 1,
  status TEXT NOT NULL DEFAULT 'active',
  account_id TEXT REFERENCES accounts(id),
  notes TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS investments (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  type TEXT NOT NULL,
  account_id TEXT REFERENCES accounts(id),
  total_invested TEXT NOT NULL DEFAULT '0',
  current_value TEXT NOT NULL DEFAULT '0',
  monthly_target TEXT,
  notes TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS debts (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  type TEXT NOT NULL,
  principal_amount TEXT NOT NULL,
  outstanding_amount TEXT NOT NULL,
  interest_rate TEXT NOT NULL DEFAULT '0',
  emi_amount TEXT,
  emi_day INTEGER,
  start_date TEXT NOT NULL,
  end_date TEXT,
  account_id TEXT REFERENCES accounts(id),
  notes TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS recurring (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  type TEXT NOT NULL,
  amount TEXT NOT NULL,
  frequency TEXT NOT NULL,
  day_of_month INTEGER,
  category_id TEXT NOT NULL,
  from_account_id TEXT REFERENCES accounts(id),
  to_account_id TEXT REFERENCES accounts(id),
  notes TEXT,
  is_active INTEGER NOT NULL DEFAULT 1,
  next_run_date TEXT NOT NULL,
  last_run_date TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS transactions (
  id TEXT PRIMARY KEY,
  type TEXT NOT NULL,
  amount TEXT NOT NULL,
  date TEXT NOT NULL,
  category_id TEXT NOT NULL,
  from_account_id TEXT REFERENCES accounts(id),
  to_account_id TEXT REFERENCES accounts(id),
  notes TEXT,
  goal_id TEXT REFERENCES goals(id) ON DELETE SET NULL,
  investment_id TEXT REFERENCES investments(id) ON DELETE SET NULL,
  debt_id TEXT REFERENCES debts(id) ON DELETE SET NULL,
  recurring_id TEXT REFERENCES recurring(id) ON DELETE SET NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS recurring_runs (
  id TEXT PRIMARY KEY,
  recurring_id TEXT NOT NULL REFERENCES recurring(id) ON DELETE CASCADE,
  run_date TEXT NOT NULL,
  status TEXT NOT NULL,
  transaction_id TEXT REFERENCES transactions(id) ON DELETE SET NULL,
  reason TEXT,
  attempts INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS budgets (
  id TEXT PRIMARY KEY,
  month TEXT NOT NULL UNIQUE,
  status TEXT NOT NULL DEFAULT 'active',
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS budget_lines (
  id TEXT PRIMARY KEY,
  budget_id TEXT NOT NULL REFERENCES budgets(id) ON DELETE CASCADE,
  category_id TEXT NOT NULL,
  planned TEXT NOT NULL,
  alert_threshold INTEGER
);

CREATE TABLE IF NOT EXISTS alerts (
  id TEXT PRIMARY KEY,
  type TEXT NOT NULL,
  title TEXT NOT NULL,
  message TEXT NOT NULL,
  is_read INTEGER NOT NULL DEFAULT 0,
  data TEXT,
  created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS uq_recurring_runs
ON recurring_runs(recurring_id, run_date);

CREATE INDEX IF NOT EXISTS idx_recurring_next_run_date ON recurring(next_run_date);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date);
CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category_id);
CREATE INDEX IF NOT EXISTS idx_transactions_type ON transactions(type);
CREATE INDEX IF NOT EXISTS idx_transactions_debt ON transactions(debt_id);
CREATE INDEX IF NOT EXISTS idx_budget_lines_budget ON budget_lines(budget_id);
"""
