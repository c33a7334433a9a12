#!/usr/bin/env python3
"""
Check the Supabase configuration used by the Temperature Tracker.
Run this script to verify that secrets are present and the temperature_logs
table is reachable:

    python test_supabase_config.py
"""

import sys

from temptracker.config import load_settings
from temptracker.providers import create_supabase_client


def test_supabase_config():
    """Test Supabase configuration and table access."""
    print("Testing Supabase configuration...")
    print("=" * 50)

    settings = load_settings()
    if not settings.supabase_configured:
        print("Streamlit secrets not found")
        print("Make sure you have a .streamlit/secrets.toml file with:")
        print("   SUPABASE_URL = 'your-project-url'")
        print("   SUPABASE_ANON_KEY = 'your-anon-key'")
        return False
    print("Streamlit secrets found")

    try:
        client = create_supabase_client(settings)
        print("Supabase client created successfully")
    except Exception as e:
        print(f"Failed to create Supabase client: {e}")
        return False

    try:
        client.table(settings.supabase_table).select("date, temperature").limit(1).execute()
        print(f"Table {settings.supabase_table} reachable")
    except Exception as e:
        print(f"Database connection failed: {e}")
        print("Create the table with:")
        print(f"   create table {settings.supabase_table} (")
        print("     user_id uuid references auth.users not null,")
        print("     date date not null,")
        print("     temperature double precision not null,")
        print("     unique (user_id, date));")
        return False

    redirect_url = "http://localhost:8501"
    print("Google OAuth URL:")
    print(f"   {settings.supabase_url}/auth/v1/authorize?provider=google&redirect_to={redirect_url}")
    return True


if __name__ == "__main__":
    success = test_supabase_config()
    if success:
        print("\nConfiguration test completed successfully!")
    else:
        print("\nConfiguration test failed. Please fix the issues above.")
        sys.exit(1)
