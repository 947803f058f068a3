"""
Seed script for the Participium Firestore database.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Custom admin password: python scripts/seed_db.py --apply --admin-password s3cret!

Behavior:
  - Builds the roles, offices, categories, municipal boundary and admin account
    (with its office role).
  - Document ids are derived from names, so re-running overwrites instead of duplicating.
  - Gets DB via `participium.config.firebase.get_db()`.

NOTE: Set FIREBASE_CREDENTIALS_PATH (or Application Default Credentials) in `.env` first.
"""

import argparse
import json
from typing import Any, Dict

from participium.config.firebase import get_db
from participium.utils.firestore_helpers import utcnow
from participium.utils.security import hash_password

ROLES = [
    {"name": "user", "label": "User", "is_municipal": False},
    {"name": "admin", "label": "Admin", "is_municipal": True},
    {"name": "pr_officer", "label": "PR Officer", "is_municipal": True},
    {"name": "tech_officer", "label": "Technical Officer", "is_municipal": True},
    {"name": "external_maintainer", "label": "External Maintainer", "is_municipal": True},
]

OFFICES = [
    {"name": "maintenance", "label": "Maintenance and Technical Services", "is_external": False},
    {"name": "infrastructure", "label": "Infrastructure", "is_external": False},
    {"name": "public_services", "label": "Local Public Services", "is_external": False},
    {"name": "environment", "label": "Environment Quality", "is_external": False},
    {"name": "green_parks", "label": "Green Areas and Parks", "is_external": False},
    {"name": "civic_services", "label": "Decentralization and Civic Services", "is_external": False},
    {"name": "organization_office", "label": "Organization Office", "is_external": False},
    {"name": "external_company_1", "label": "External Company 1", "is_external": True},
    {"name": "external_company_2", "label": "External Company 2", "is_external": True},
    {"name": "external_company_3", "label": "External Company 3", "is_external": True},
]

# (category name, office, external office)
CATEGORIES = [
    ("Roads and Urban Furnishings", "maintenance", "external_company_1"),
    ("Architectural Barriers", "maintenance", "external_company_2"),
    ("Road Signs and Traffic Lights", "infrastructure", "external_company_3"),
    ("Public Lighting", "infrastructure", "external_company_1"),
    ("Water Supply - Drinking Water", "public_services", "external_company_2"),
    ("Sewer System", "public_services", "external_company_3"),
    ("Waste", "environment", "external_company_1"),
    ("Public Green Areas and Playgrounds", "green_parks", "external_company_2"),
    ("Other", "civic_services", "external_company_3"),
]

# Envelope of the Turin municipal area; replace with the official GeoJSON when available
TORINO_BOUNDARY = {
    "type": "MultiPolygon",
    "coordinates": [[[
        [7.5778, 45.0067],
        [7.7733, 45.0067],
        [7.7733, 45.1402],
        [7.5778, 45.1402],
        [7.5778, 45.0067],
    ]]],
}


def _slug(name: str) -> str:
    return "".join(c if c.isalnum() else "_" for c in name.lower()).strip("_")


def build_seed(admin_password: str) -> Dict[str, Dict[str, Dict[str, Any]]]:
    now = utcnow()
    seed: Dict[str, Dict[str, Dict[str, Any]]] = {
        "roles": {f"role_{r['name']}": dict(r) for r in ROLES},
        "offices": {f"office_{o['name']}": dict(o) for o in OFFICES},
        "categories": {},
        "boundaries": {
            "boundary_torino": {
                "name": "torino",
                "label": "Comune di Torino",
                # Firestore cannot store nested arrays
                "geometry": json.dumps(TORINO_BOUNDARY),
            }
        },
    }

    for name, office, external_office in CATEGORIES:
        seed["categories"][f"category_{_slug(name)}"] = {
            "name": name,
            "office_id": f"office_{office}",
            "external_office_id": f"office_{external_office}",
        }

    seed["users"] = {
        "user_admin": {
            "email": "admin@participium.local",
            "username": "admin_participium",
            "first_name": "Admin",
            "last_name": "Participium",
            "role_id": "role_admin",
            "office_id": "office_organization_office",
            "password_hash": hash_password(admin_password),
            "is_email_verified": True,
            "created_at": now,
            "updated_at": now,
        }
    }
    seed["office_roles"] = {
        "user_admin_office_organization_office": {
            "user_id": "user_admin",
            "office_id": "office_organization_office",
            "role_id": "role_admin",
            "created_at": now,
            "updated_at": now,
        }
    }
    return seed


def write_to_db(db: Any, seed: dict, apply: bool = False):
    for collection, docs in seed.items():
        for doc_id, data in docs.items():
            print(f"Preparing: {collection}/{doc_id}")
            if not apply:
                continue
            db.collection(collection).document(doc_id).set(data)
            print(f"Wrote: {collection}/{doc_id}")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--admin-password", default="password", help="Password of the seeded admin account")
    args = parser.parse_args()

    seed = build_seed(args.admin_password)
    db = get_db() if args.apply else None

    write_to_db(db, seed, apply=args.apply)

    if args.apply:
        print("Seeding completed.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
