# scripts/init_db.py
import sys
from pathlib import Path
from sqlalchemy import text

# Ensure project root is on the path when running this script directly
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio
from auditcast.infrastructure.database.session import create_schema, engine

async def init_db():
    async with engine.begin() as conn:
        result = await conn.execute(text("SELECT 1"))
        print("DB Connected:", result.scalar())
    await create_schema()
    print("Tables ready: users, audit_logs")

asyncio.run(init_db())
