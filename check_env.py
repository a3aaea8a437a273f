#!/usr/bin/env python3
"""Helper script to check (and template) the .env file for the lane pairs service."""

from pathlib import Path
import os
import sys

ENV_TEMPLATE = """# Supabase Configuration (city directory)
# Get these from: https://supabase.com/dashboard -> Your Project -> Settings -> API
LANEPAIRS_SUPABASE_URL=https://your-project-id.supabase.co
LANEPAIRS_SUPABASE_KEY=your-service-role-key-here

# City sheet used when Supabase is not configured (.csv or .xlsx)
LANEPAIRS_CITY_FILE=./data/cities.csv

# HERE.com geocoding (optional, advisory verification only)
# LANEPAIRS_HERE_API_KEY=your-here-api-key

# Pairing
LANEPAIRS_DEFAULT_RADIUS_MILES=75
LANEPAIRS_FILL_ALTERNATE_COUNT=5
# LANEPAIRS_CONTACT_METHODS=["email","primary phone"]
"""


def _masked(value: str, keep: int = 20) -> str:
    return value if len(value) <= keep else f"{value[:keep]}..."


def main() -> int:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Lane Pairs Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        env_file.write_text(ENV_TEMPLATE, encoding="utf-8")
        print(f"Created template .env file at: {env_file}")
        print("Edit it and add your Supabase credentials, then run this script again.")
        return 1

    print(f"Found .env file at: {env_file}")
    print()

    sys.path.insert(0, str(project_root / "src"))
    try:
        from lanepairs.config import settings
    except Exception as e:
        print(f"Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return 1

    from lanepairs.db.supabase import supabase_configured

    if supabase_configured():
        print(f"Supabase URL: {_masked(settings.supabase_url, 30)}")
        print(f"Supabase key: {_masked(settings.supabase_key)}")
        print("City directory: database")
    elif settings.city_file.exists():
        print(f"City directory: file ({settings.city_file})")
    else:
        print(f"City directory: NOT configured (no Supabase credentials, {settings.city_file} missing)")

    print(f"HERE verification: {'enabled' if settings.here_api_key else 'disabled'}")
    print(f"Default radius: {settings.default_radius_miles} mi")
    print(f"Alternates: standard={settings.standard_alternate_count}, fill={settings.fill_alternate_count}")
    print(f"Contact methods: {', '.join(settings.contact_methods)}")
    for name in ("LANEPAIRS_SUPABASE_URL", "LANEPAIRS_SUPABASE_KEY"):
        if name not in os.environ:
            print(f"Note: {name} not set in the process environment (read from .env only)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
