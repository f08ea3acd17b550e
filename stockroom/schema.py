SCHEMA_SQL = r"""
-- Finished goods
CREATE TABLE IF NOT EXISTS products (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  size TEXT NOT NULL DEFAULT '',
  current_stock INTEGER NOT NULL DEFAULT 0,   -- not clamped at 0
  lid_color TEXT NOT NULL DEFAULT '',
  bottle_type TEXT NOT NULL DEFAULT '',
  price REAL NOT NULL DEFAULT 0,
  description TEXT NOT NULL DEFAULT '',
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

-- Raw components (lids / bottles / labels)
CREATE TABLE IF NOT EXISTS components (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  category TEXT NOT NULL,                     -- lids / bottles / labels
  type TEXT NOT NULL,                         -- lowercase key, e.g. 'gold', 'amber_16oz'
  quantity INTEGER NOT NULL DEFAULT 0,
  average_cost REAL NOT NULL DEFAULT 0,       -- weighted mean unit cost
  total_value REAL NOT NULL DEFAULT 0,        -- quantity * average_cost
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  UNIQUE (category, type)
);

-- Explicit product -> component mapping (overrides derived keys)
CREATE TABLE IF NOT EXISTS product_components (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  product_id INTEGER NOT NULL,
  role TEXT NOT NULL,                         -- lids / bottles / labels
  component_id INTEGER NOT NULL,
  UNIQUE (product_id, role),
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
  FOREIGN KEY (component_id) REFERENCES components(id) ON DELETE CASCADE
);

-- Append-only purchase ledger
CREATE TABLE IF NOT EXISTS component_purchases (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  component_id INTEGER NOT NULL,
  purchase_date TEXT NOT NULL,                -- ISO date
  quantity INTEGER NOT NULL,
  total_paid REAL NOT NULL,
  cost_per_unit REAL NOT NULL,
  created_at TEXT NOT NULL,
  FOREIGN KEY (component_id) REFERENCES components(id)
);

-- Recipes (planning only, no stock effect)
CREATE TABLE IF NOT EXISTS recipes (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  product_id INTEGER NOT NULL UNIQUE,
  ingredients TEXT NOT NULL DEFAULT '[]',     -- JSON [{name, amount, unit}]
  original_batch_size INTEGER NOT NULL DEFAULT 1,
  total_recipe_weight REAL NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
);

-- Production batches
CREATE TABLE IF NOT EXISTS production_history (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  production_date TEXT NOT NULL,              -- ISO date
  product_id INTEGER NOT NULL,
  product_name TEXT NOT NULL,                 -- snapshot "Name (Size)"
  quantity_made INTEGER NOT NULL,
  components_used TEXT NOT NULL DEFAULT '{}', -- JSON {category: "key: n"}
  batch_number TEXT,
  notes TEXT NOT NULL DEFAULT '',
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  FOREIGN KEY (product_id) REFERENCES products(id)
);

-- Market sales events
CREATE TABLE IF NOT EXISTS sales_events (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  event_date TEXT NOT NULL,                   -- ISO date
  event_name TEXT NOT NULL,
  total_revenue REAL NOT NULL DEFAULT 0,      -- sum of item subtotals
  notes TEXT NOT NULL DEFAULT '',
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sales_items (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  sales_event_id INTEGER NOT NULL,
  product_id INTEGER NOT NULL,
  product_name TEXT NOT NULL,
  starting_stock INTEGER,                     -- brought
  ending_stock INTEGER,                       -- remaining
  quantity_sold INTEGER NOT NULL,
  unit_price REAL NOT NULL,
  subtotal REAL NOT NULL,
  created_at TEXT NOT NULL,
  FOREIGN KEY (sales_event_id) REFERENCES sales_events(id) ON DELETE CASCADE,
  FOREIGN KEY (product_id) REFERENCES products(id)
);

-- Singleton dashboard note (id is always 1)
CREATE TABLE IF NOT EXISTS dashboard_notes (
  id INTEGER PRIMARY KEY CHECK (id = 1),
  content TEXT NOT NULL DEFAULT '',
  updated_at TEXT NOT NULL
);
"""
