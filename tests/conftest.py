"""Global test fixtures."""

import os

# Configure before any test module imports collab.core.config
# This must happen at module load time, not in a fixture
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests-min-32-bytes")
