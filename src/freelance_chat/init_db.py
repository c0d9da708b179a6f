# src/freelance_chat/init_db.py
"""Create the database tables, optionally seeding a demo conversation."""

from __future__ import annotations

import argparse

from sqlalchemy.orm import Session

from freelance_chat.core.security import create_access_token
from freelance_chat.db.session import create_tables, session_scope
from freelance_chat.models import Application, Job, User


def seed_demo(db: Session) -> dict[str, str]:
    """Insert an employer, a freelancer, a job and an application.

    Returns:
        Mapping of role to a freshly issued access token
    """
    employer = User(name="Demo Employer", email="employer@example.com", role="employer")
    freelancer = User(name="Demo Freelancer", email="freelancer@example.com", role="freelancer")
    db.add_all([employer, freelancer])
    db.flush()

    job = Job(title="Landing page redesign", employer_id=employer.id)
    db.add(job)
    db.flush()

    db.add(
        Application(
            job_id=job.id,
            freelancer_id=freelancer.id,
            proposal="I can do this",
            bid=500,
        )
    )
    db.flush()

    return {
        "employer": create_access_token(employer.id),
        "freelancer": create_access_token(freelancer.id),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="insert demo users and an application")
    args = parser.parse_args()

    create_tables()
    print("Database initialized.")

    if args.seed:
        with session_scope() as db:
            tokens = seed_demo(db)
        for role, token in tokens.items():
            print(f"{role}: {token}")


if __name__ == "__main__":
    main()
