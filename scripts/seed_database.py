#!/usr/bin/env python3
"""
Script to seed the database with sample data for local development
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date, timedelta
from casaora.database import init_db, drop_db, get_db
from casaora.models import User, PricingRule
from casaora.models.user import UserRole, OnboardingStatus
from casaora.utils.security import generate_token
import random

CITIES = ['Bogotá', 'Medellín', 'Cali', 'Barranquilla', 'Cartagena']
CATEGORIES = ['cleaning', 'plumbing', 'electrical', 'gardening', 'childcare']


def create_pricing_rules(db):
    """Create the global default plus a few scoped rules"""
    rules = [
        # The global default must always exist
        PricingRule(commission_rate=0.18, background_check_fee_cop=25000,
                    notes='Global default'),
        PricingRule(service_category='cleaning', commission_rate=0.15,
                    min_price_cop=40000, max_price_cop=400000, deposit_percentage=0.2),
        PricingRule(service_category='cleaning', city='Bogotá', commission_rate=0.14,
                    min_price_cop=50000, max_price_cop=450000, deposit_percentage=0.2),
        PricingRule(city='Medellín', commission_rate=0.16),
        PricingRule(service_category='childcare', commission_rate=0.20,
                    late_cancel_hours=48, late_cancel_fee_percentage=0.75),
        # Holiday promotion, only effective for a month
        PricingRule(service_category='gardening', commission_rate=0.12,
                    effective_from=date.today(), effective_until=date.today() + timedelta(days=30),
                    notes='Gardening launch promotion'),
    ]

    for rule in rules:
        db.add(rule)

    return rules


def create_users(db):
    """Create an admin, customers and professionals at different onboarding stages"""
    admin = User(
        email='admin@casaora.co',
        first_name='Admin',
        last_name='User',
        role=UserRole.ADMIN,
        is_verified=True
    )
    db.add(admin)

    first_names = ['Ana', 'Carlos', 'Luisa', 'Andrés', 'Valentina', 'Santiago', 'Camila', 'Mateo']
    last_names = ['Gómez', 'Rodríguez', 'Martínez', 'López', 'García', 'Hernández']

    customers = []
    for i in range(5):
        customer = User(
            email=f'customer{i + 1}@example.com',
            first_name=random.choice(first_names),
            last_name=random.choice(last_names),
            role=UserRole.CUSTOMER,
            city=random.choice(CITIES),
            stripe_customer_id=f'cus_sample{i + 1}'
        )
        db.add(customer)
        customers.append(customer)

    statuses = [OnboardingStatus.APPLICATION_PENDING, OnboardingStatus.APPLICATION_IN_REVIEW,
                OnboardingStatus.APPROVED]

    professionals = []
    for i in range(8):
        status = statuses[i % len(statuses)]
        professional = User(
            email=f'pro{i + 1}@example.com',
            phone=f'+57300{random.randint(1000000, 9999999)}',
            first_name=random.choice(first_names),
            last_name=random.choice(last_names),
            role=UserRole.PROFESSIONAL,
            document_id=str(random.randint(10000000, 1099999999)),
            document_type='CC',
            date_of_birth=f'{random.randint(1970, 2000)}-0{random.randint(1, 9)}-1{random.randint(0, 9)}',
            city=random.choice(CITIES),
            country_code='CO',
            onboarding_status=status,
            documents_verified=status != OnboardingStatus.APPLICATION_PENDING,
            interview_completed=status == OnboardingStatus.APPROVED,
            is_active=status == OnboardingStatus.APPROVED,
            stripe_account_id=f'acct_sample{i + 1}' if status == OnboardingStatus.APPROVED else None
        )
        db.add(professional)
        professionals.append(professional)

    db.flush()

    return {'admin': admin, 'customers': customers, 'professionals': professionals}


def main():
    """Main seeding function"""
    print("Dropping existing database...")
    drop_db()

    print("Initializing new database...")
    init_db()

    with get_db() as db:
        print("Creating pricing rules...")
        rules = create_pricing_rules(db)

        print("Creating users...")
        users = create_users(db)
        admin_token = generate_token({'user_id': users['admin'].id, 'role': 'admin'})

    print("\nDatabase seeded successfully!")
    print("Created:")
    print(f"- {len(rules)} pricing rules (global default at 18%)")
    print("- 1 Admin user (admin@casaora.co)")
    print(f"- {len(users['customers'])} Customers")
    print(f"- {len(users['professionals'])} Professionals")
    print(f"\nAdmin API token (set as ADMIN_API_TOKEN):\n{admin_token}")


if __name__ == "__main__":
    main()
