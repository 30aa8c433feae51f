from __future__ import annotations

import os
import tempfile

# Settings() is built at import time; seed what it requires before any app import.
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("IMAGE_STORAGE_BACKEND", "local")
os.environ.setdefault("IMAGE_STORAGE_PATH", tempfile.mkdtemp(prefix="recipe-uploads-"))
os.environ.setdefault("RECIPE_GENERATION_LIMIT", "unlimited")
os.environ.setdefault("AUDIT_LOG_ENABLED", "true")
