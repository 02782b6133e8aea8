import asyncio
import os
import sys

# Add project root to path
sys.path.append(os.getcwd())

from src.infra.database import close_db, init_db


async def main():
    # Schema is applied by init_db
    db = await init_db()
    print("Connected to DB")

    # Vehicle 7 of organization 1 with device D1
    query = """
        INSERT INTO vehicles (id, organization_id, device_id, latitude, longitude,
                              vehicle_number, make, model, year, created_at, updated_at)
        VALUES (7, 1, 'D1', 26.9169, 75.7999, 'RJ14-0007', 'Tata', 'Ace', 2021, NOW(), NOW())
        ON CONFLICT (id) DO NOTHING
    """

    await db.execute(query)
    print("Vehicle 1:7:D1 created")

    await close_db(db)


if __name__ == "__main__":
    asyncio.run(main())
