#!/usr/bin/env python3
"""
Settings lookup for Turning Point 360.

Values come from Streamlit secrets first (`.streamlit/secrets.toml` locally or
the Streamlit Cloud dashboard), then environment variables, then the default.
"""

import os

DEFAULT_DB_PATH = "turning_point_360.db"


def _read_secret(section, key):
    try:
        import streamlit as st
        return st.secrets.get(section, {}).get(key)
    except Exception:
        # No secrets file outside `streamlit run`
        return None


def get_setting(section, key, env_var=None, default=None):
    """Return a setting from secrets, then the environment, then the default."""
    value = _read_secret(section, key)
    if value is None and env_var:
        value = os.environ.get(env_var)
    if value is None:
        return default
    return value


def get_bool_setting(section, key, env_var=None, default=False):
    """Like get_setting, but coerces 'true'/'1'/'yes' strings to booleans."""
    value = get_setting(section, key, env_var)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def get_db_path():
    return get_setting('app', 'db_path', 'CATALYST_DB_PATH', DEFAULT_DB_PATH)


def get_turso_credentials():
    """Return (url, token) for Turso, either of which may be None."""
    url = get_setting('turso', 'url', 'TURSO_DATABASE_URL')
    token = get_setting('turso', 'token', 'TURSO_AUTH_TOKEN')
    return url, token


def enforce_nominee_validation():
    return get_bool_setting('app', 'enforce_nominee_validation', 'ENFORCE_NOMINEE_VALIDATION')
