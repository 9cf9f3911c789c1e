SCHEMA_SQL = r"""
-- Catalog (only the fields the costing engine reads)
CREATE TABLE IF NOT EXISTS products (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  price INTEGER NOT NULL DEFAULT 0,      -- current selling price
  cost INTEGER,                          -- reference cost, not the landed cost
  in_stock INTEGER NOT NULL DEFAULT 1,   -- 0 = sold
  category TEXT
);

-- Batches (one import shipment = one batch)
CREATE TABLE IF NOT EXISTS batches (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  batch_number TEXT NOT NULL UNIQUE,
  purchase_date TEXT NOT NULL,           -- ISO date

  purchase_total_cost INTEGER NOT NULL,
  shipping_cost INTEGER,
  customs_fees INTEGER,
  additional_fees INTEGER,
  total_cost INTEGER NOT NULL,           -- purchase + shipping + customs + additional

  status TEXT NOT NULL DEFAULT 'ordered',
  mailbox_tracking TEXT,
  notes TEXT,

  arrived_mailbox_at TEXT,
  shipped_to_colombia_at TEXT,
  delivered_at TEXT,

  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

-- Batch lines
CREATE TABLE IF NOT EXISTS batch_items (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  batch_id INTEGER NOT NULL,
  product_id INTEGER NOT NULL,
  quantity INTEGER NOT NULL,
  unit_cost INTEGER NOT NULL,
  created_at TEXT NOT NULL,
  FOREIGN KEY (batch_id) REFERENCES batches(id) ON DELETE CASCADE,
  FOREIGN KEY (product_id) REFERENCES products(id)
);

-- Operating expenses
CREATE TABLE IF NOT EXISTS expenses (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  amount INTEGER NOT NULL,
  expense_date TEXT NOT NULL,
  notes TEXT
);

-- Financing costs
CREATE TABLE IF NOT EXISTS interest_payments (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  amount INTEGER NOT NULL,
  source TEXT NOT NULL,
  creditor TEXT,
  payment_date TEXT NOT NULL,
  notes TEXT
);

-- Write-offs
CREATE TABLE IF NOT EXISTS losses (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  amount INTEGER NOT NULL,
  reason TEXT NOT NULL,
  loss_date TEXT NOT NULL,
  order_id INTEGER,
  notes TEXT,
  FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE SET NULL
);

-- Finalized orders (financials computed by the order subsystem)
CREATE TABLE IF NOT EXISTS orders (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  order_number TEXT NOT NULL UNIQUE,
  status TEXT NOT NULL DEFAULT 'pending',
  subtotal INTEGER NOT NULL DEFAULT 0,
  shipping_cost INTEGER NOT NULL DEFAULT 0,
  discount INTEGER NOT NULL DEFAULT 0,
  total INTEGER NOT NULL DEFAULT 0,
  total_cost INTEGER NOT NULL DEFAULT 0,
  profit INTEGER NOT NULL DEFAULT 0,
  payment_method TEXT,
  payment_fee INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS order_items (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  order_id INTEGER NOT NULL,
  product_id INTEGER,
  product_name TEXT NOT NULL,
  product_price INTEGER NOT NULL,
  product_cost INTEGER NOT NULL DEFAULT 0,
  quantity INTEGER NOT NULL,
  subtotal INTEGER NOT NULL,
  FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE,
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE SET NULL
);
"""
