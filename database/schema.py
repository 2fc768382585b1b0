"""
Database schema definitions.
Table creation, indexes, and structure management.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'booking_history',
        'availability_versions',
        'resource_blocks',
        'bookings',
        'guests',
        'resource_capacities',
        'resources',
        'users'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Staff accounts
    db.execute('''
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            full_name TEXT,
            role TEXT NOT NULL DEFAULT 'ADMIN',
            active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            last_login TEXT
        )
    ''')

    # 2. Bookable resources
    db.execute('''
        CREATE TABLE resources (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT UNIQUE NOT NULL,
            category TEXT NOT NULL CHECK(category IN ('spa', 'bath', 'quad')),
            title TEXT NOT NULL,
            open_time TEXT NOT NULL,
            close_time TEXT NOT NULL,
            granularity_minutes INTEGER NOT NULL DEFAULT 60,
            buffer_minutes INTEGER NOT NULL DEFAULT 0,
            display_order INTEGER DEFAULT 0,
            active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE resource_capacities (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            resource_id INTEGER NOT NULL REFERENCES resources(id),
            subtype TEXT NOT NULL,
            min_guests INTEGER NOT NULL DEFAULT 1,
            max_guests INTEGER NOT NULL,
            UNIQUE(resource_id, subtype)
        )
    ''')

    # 3. Guest profiles (statistics only)
    db.execute('''
        CREATE TABLE guests (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            phone TEXT UNIQUE NOT NULL,
            full_name TEXT,
            total_bookings INTEGER DEFAULT 0,
            completed INTEGER DEFAULT 0,
            no_shows INTEGER DEFAULT 0,
            cancellations INTEGER DEFAULT 0,
            last_visit TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 4. Bookings
    db.execute('''
        CREATE TABLE bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ticket_number TEXT UNIQUE NOT NULL,
            resource_id INTEGER NOT NULL REFERENCES resources(id),
            booking_date TEXT NOT NULL,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            duration_minutes INTEGER NOT NULL,
            subtype TEXT NOT NULL,
            guest_count INTEGER NOT NULL,
            add_ons TEXT DEFAULT '{}',
            price_base INTEGER NOT NULL DEFAULT 0,
            price_extra_hours INTEGER NOT NULL DEFAULT 0,
            price_add_ons INTEGER NOT NULL DEFAULT 0,
            discount_percent REAL NOT NULL DEFAULT 0,
            discount_amount INTEGER NOT NULL DEFAULT 0,
            price_total INTEGER NOT NULL DEFAULT 0,
            customer_name TEXT NOT NULL,
            customer_phone TEXT NOT NULL,
            customer_external_id TEXT,
            comment TEXT,
            status TEXT NOT NULL DEFAULT 'pending_call'
                CHECK(status IN ('pending_call', 'confirmed', 'completed',
                                 'cancelled', 'no_show', 'expired')),
            source TEXT NOT NULL DEFAULT 'guest',
            payment_method TEXT CHECK(payment_method IS NULL OR payment_method IN ('erip', 'cash')),
            paid_at TEXT,
            hold_until TEXT,
            joined_group INTEGER NOT NULL DEFAULT 0,
            created_by TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK(start_time < end_time)
        )
    ''')

    # 5. Audit trail of transitions and side effects
    db.execute('''
        CREATE TABLE booking_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL REFERENCES bookings(id),
            action TEXT NOT NULL,
            from_status TEXT,
            to_status TEXT,
            changed_by TEXT,
            notes TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 6. Write counters for availability cache invalidation
    db.execute('''
        CREATE TABLE availability_versions (
            resource_id INTEGER NOT NULL REFERENCES resources(id),
            booking_date TEXT NOT NULL,
            version INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (resource_id, booking_date)
        )
    ''')

    # 7. Staff-closed days and hours (instructor off, maintenance).
    # No start_time: the whole day is closed. No end_time: closed until closing.
    db.execute('''
        CREATE TABLE resource_blocks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            resource_id INTEGER NOT NULL REFERENCES resources(id),
            block_date TEXT NOT NULL,
            start_time TEXT,
            end_time TEXT,
            reason TEXT,
            created_by TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK(end_time IS NULL OR start_time IS NOT NULL),
            CHECK(start_time IS NULL OR end_time IS NULL OR start_time < end_time)
        )
    ''')


def create_indexes(db):
    """Create indexes for the hot availability and listing queries."""
    db.execute('CREATE INDEX idx_bookings_resource_date ON bookings(resource_id, booking_date)')
    db.execute('CREATE INDEX idx_bookings_date_status ON bookings(booking_date, status)')
    db.execute('CREATE INDEX idx_bookings_phone_status ON bookings(customer_phone, status)')
    db.execute('CREATE INDEX idx_bookings_hold ON bookings(status, hold_until)')
    db.execute('CREATE INDEX idx_booking_history_booking ON booking_history(booking_id)')
    db.execute('CREATE INDEX idx_resources_category ON resources(category, active)')
    db.execute('CREATE INDEX idx_resource_blocks_date ON resource_blocks(resource_id, block_date)')
