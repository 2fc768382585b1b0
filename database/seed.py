"""
Database seed data.
Initial data population for fresh database installations.
"""

from werkzeug.security import generate_password_hash


def seed_database(db):
    """Insert initial seed data."""

    # 1. Create Resources
    resources_data = [
        # code, category, title, open, close, granularity, buffer, order
        ('SPA1', 'spa', 'Банный комплекс 1', '10:00', '22:00', 60, 0, 1),
        ('SPA2', 'spa', 'Банный комплекс 2', '10:00', '22:00', 60, 0, 2),
        ('B1', 'bath', 'Баня 1', '10:00', '22:00', 60, 0, 3),
        ('B2', 'bath', 'Баня 2', '10:00', '22:00', 60, 0, 4),
        # One instructor leads every ride, so the fleet is a single resource
        ('QUADS', 'quad', 'Квадроциклы', '09:00', '19:00', 30, 15, 5),
    ]

    for code, category, title, open_time, close_time, granularity, buffer, order in resources_data:
        db.execute('''
            INSERT INTO resources
            (code, category, title, open_time, close_time,
             granularity_minutes, buffer_minutes, display_order)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', (code, category, title, open_time, close_time, granularity, buffer, order))

    # 2. Capacity bounds per resource and subtype
    capacities = {
        'SPA1': [('bath_only', 1, 6), ('terrace_only', 1, 12),
                 ('tub_only', 1, 6), ('bath_with_tub', 1, 10)],
        'SPA2': [('bath_only', 1, 6), ('terrace_only', 1, 12),
                 ('tub_only', 1, 4), ('bath_with_tub', 1, 6)],
        'B1': [('bath', 1, 8)],
        'B2': [('bath', 1, 8)],
        'QUADS': [('quad_short', 1, 4), ('quad_long', 1, 4)],
    }

    for code, rows in capacities.items():
        resource_id = db.execute('SELECT id FROM resources WHERE code = ?', (code,)).fetchone()[0]
        for subtype, min_guests, max_guests in rows:
            db.execute('''
                INSERT INTO resource_capacities (resource_id, subtype, min_guests, max_guests)
                VALUES (?, ?, ?, ?)
            ''', (resource_id, subtype, min_guests, max_guests))

    # 3. Create default staff users
    users_data = [
        ('owner', 'owner123', 'Владелец', 'OWNER'),
        ('admin', 'admin123', 'Администратор', 'ADMIN'),
        ('instructor', 'instructor123', 'Инструктор', 'INSTRUCTOR'),
    ]

    for username, password, full_name, role in users_data:
        db.execute('''
            INSERT INTO users (username, password_hash, full_name, role)
            VALUES (?, ?, ?, ?)
        ''', (username, generate_password_hash(password), full_name, role))
