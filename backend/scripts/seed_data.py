"""
Seed Data Script - Creates a sample agency team and project for local testing
Run: python -m scripts.seed_data
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import jwt

from agencyflow.config.settings import settings
from agencyflow.domain.models import Project, User
from agencyflow.domain.enums import Role
from agencyflow.repositories.mongo_client import get_collection, create_indexes
from agencyflow.repositories.project_repo import ProjectRepository
from agencyflow.repositories.user_repo import UserRepository


SAMPLE_USERS = [
    ("USR-admin", "Ada Admin", "admin@agency.test", Role.ADMIN),
    ("USR-manager", "Mona Manager", "manager@agency.test", Role.MANAGER),
    ("USR-lead", "Theo Lead", "lead@agency.test", Role.TEAM_LEAD),
    ("USR-dev", "Dana Developer", "dev@agency.test", Role.DEVELOPER),
    ("USR-designer", "Iris Designer", "designer@agency.test", Role.DESIGNER),
]


def create_sample_team():
    """Create one user per role and a project staffed by them"""
    if get_collection("users").count_documents({}) > 0:
        print("Database already has data. Skipping seed.")
        return

    users = UserRepository()
    for user_id, name, email, role in SAMPLE_USERS:
        users.create_user(User(user_id=user_id, name=name, email=email, role=role))
        print(f"Created user: {user_id} ({role.value})")

    project = ProjectRepository().create_project(Project(
        project_id="PRJ-sample",
        name="Sample Website Redesign",
        manager_id="USR-manager",
        team_lead_id="USR-lead",
        designer_id="USR-designer"
    ))
    print(f"Created project: {project.project_id}")

    print("\n[OK] Seed data created successfully!")


def print_dev_tokens():
    """Print bearer tokens signed with the configured secret"""
    print("\nDevelopment tokens:")
    for user_id, _, _, role in SAMPLE_USERS:
        claims = {"sub": user_id}
        if settings.jwt_audience:
            claims["aud"] = settings.jwt_audience
        token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        print(f"  {role.value:<10} {token}")


def main():
    print("=== Seeding database ===")
    print("-" * 40)

    create_indexes()
    create_sample_team()
    print_dev_tokens()

    print("-" * 40)
    print("Done!")


if __name__ == "__main__":
    main()
