"""
Test environment. Runs before any application module is imported, so the
settings singleton and the global engine pick these values up.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["NILAI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["ASSESSMENT_AUTO_PROCESS"] = "false"
os.environ["PASSPORT_API_KEY"] = "test-key"
os.environ["PASSPORT_SCORER_ID"] = "42"
os.environ["VAULT_BASE_URL"] = "https://vault.test"
os.environ["RPC_URL"] = ""
