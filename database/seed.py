"""
Database seeding for SolarOps.
Creates a demo account with a few customers, jobs, equipment items and
installations if the account does not exist yet.
"""

import logging
from datetime import timedelta

from config import get_config
from date_utils import start_of_day

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@solarops.example"
DEMO_PASSWORD = "demo1234"
DEMO_FULL_NAME = "Demo Installer"
DEMO_COMPANY = "Sunrise Solar Co."

DEMO_CUSTOMERS = [
    {
        'name': 'Alice Johnson',
        'email': 'alice.johnson@example.com',
        'phone': '(555) 123-4567',
        'address': '742 Evergreen Terrace, Springfield',
        'lead_status': 'qualified',
    },
    {
        'name': 'Bob Martinez',
        'email': 'bob.martinez@example.com',
        'phone': '+1 555 987 6543',
        'address': '1600 Sunset Boulevard, Riverside',
        'lead_status': 'won',
    },
]

DEMO_EQUIPMENT = [
    {
        'name': 'Monocrystalline Panel 400W',
        'category': 'solar_panels',
        'brand': 'SunPower',
        'model': 'MAX3-400',
        'quantity': 48,
        'unit_price': 320.0,
        'low_stock_threshold': 10,
    },
    {
        'name': 'String Inverter 7.6kW',
        'category': 'inverters',
        'brand': 'SolarEdge',
        'model': 'SE7600H',
        'quantity': 3,
        'unit_price': 1850.0,
        'low_stock_threshold': 5,
        'minimum_stock': 2,
    },
]


def seed_demo_user(session_obj):
    """Sign in to the demo account, creating it first if it does not exist."""
    users = session_obj.users
    if users.get_user_by_email(DEMO_EMAIL):
        logger.info(f"Demo user already exists: {DEMO_EMAIL}")
        return session_obj.sign_in(DEMO_EMAIL, DEMO_PASSWORD), False

    user = session_obj.sign_up({
        'email': DEMO_EMAIL,
        'password': DEMO_PASSWORD,
        'full_name': DEMO_FULL_NAME,
        'company_name': DEMO_COMPANY,
    })
    logger.info(f"Created demo user: {user.email}")
    return user, True


def seed_demo_records(context):
    """Create the demo customers, jobs, equipment and installations."""
    tomorrow = start_of_day(context.now()) + timedelta(days=1, hours=8)

    customers = [context.customers.create(data) for data in DEMO_CUSTOMERS]
    for data in DEMO_EQUIPMENT:
        context.equipment.create(data)

    jobs = []
    for index, customer in enumerate(customers):
        job = context.jobs.create({
            'customer_id': customer.id,
            'system_size': 6.5 + index * 2,
            'estimated_revenue': 18000 + index * 6500,
            'scheduled_date': tomorrow + timedelta(days=7 * index),
            'notes': 'Roof survey complete',
        })
        jobs.append(context.jobs.update_status(job.id, 'approved'))

    for index, job in enumerate(jobs):
        context.installations.create({
            'job_id': job.id,
            'scheduled_date': job.scheduled_date,
            'crew_members': 'Sam, Priya' if index == 0 else 'Crew 3',
            'notes': 'Bring extra mounting rails',
        })

    logger.info(f"Seeded {len(customers)} customers, {len(jobs)} jobs, "
                f"{len(DEMO_EQUIPMENT)} equipment items")


def seed_database(store, config=None):
    """
    Seed the database with demo data if the demo account is missing.
    Returns the UserSession signed in as the demo user.
    """
    from services.user_session import UserSession

    store.create_all()
    session_obj = UserSession(store, config=config or get_config())
    try:
        _, created = seed_demo_user(session_obj)
        if created:
            seed_demo_records(session_obj.context())
        logger.info("Database seeding completed successfully")
        return session_obj
    except Exception as e:
        logger.error(f"Database seeding failed: {e}")
        raise


if __name__ == '__main__':
    from database.store import Store
    from logging_config import setup_logging

    app_config = get_config()
    setup_logging(app_config)
    seed_database(Store.from_config(app_config), app_config)
