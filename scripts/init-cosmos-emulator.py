#!/usr/bin/env python3
"""
Initialize Cosmos DB Emulator with the Townsquare database and containers.

Creates every container the backend reads and writes, with the partition key
the repositories expect. Run this once after starting the emulator.

Prerequisites:
1. Install Cosmos DB Emulator: https://aka.ms/cosmosdb-emulator
2. Start the emulator (it runs on https://localhost:8081)
3. Run this script: python scripts/init-cosmos-emulator.py

The emulator uses a well-known key that is safe for local development only.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path
backend_path = Path(__file__).parent.parent / "src" / "backend"
sys.path.insert(0, str(backend_path))

from azure.cosmos import PartitionKey  # noqa: E402
from azure.cosmos.aio import CosmosClient  # noqa: E402
from azure.cosmos.exceptions import CosmosHttpResponseError  # noqa: E402

from db.cosmos_session import CONTAINER_PARTITION_KEYS  # noqa: E402

# Cosmos DB Emulator connection details (well-known credentials)
EMULATOR_ENDPOINT = "https://localhost:8081"
EMULATOR_KEY = "C2y6yDjf5/R+ob0N8A7Cgv30VRDJIWEHLM+4QDU5DE2nQ9nDuVTqobD4b8mGGyPMbIZnqyMsEcaGQy67XIw/Jw=="
DATABASE_NAME = "townsquare"


async def init_emulator() -> None:
    """Create the database and all containers if they do not exist."""
    print(f"Connecting to Cosmos DB Emulator at {EMULATOR_ENDPOINT}...")

    # Emulator uses a self-signed certificate
    client = CosmosClient(
        url=EMULATOR_ENDPOINT,
        credential=EMULATOR_KEY,
        connection_verify=False,
    )

    try:
        database = await client.create_database_if_not_exists(id=DATABASE_NAME)
        print(f"  Database '{DATABASE_NAME}' ready")

        for container_name, partition_key in CONTAINER_PARTITION_KEYS.items():
            try:
                await database.create_container_if_not_exists(
                    id=container_name,
                    partition_key=PartitionKey(path=partition_key),
                )
                print(f"  Container '{container_name}' (partition: {partition_key})")
            except CosmosHttpResponseError as e:
                print(f"  Container '{container_name}' failed: {e.message}")

        print("\nInitialization complete. Next steps:")
        print("  1. Set AZURE_COSMOS_CONNECTION_STRING and AZURE_COSMOS_DISABLE_SSL=true in src/backend/.env")
        print("  2. Start the backend: cd src/backend && uvicorn main:app --reload")
    finally:
        await client.close()


if __name__ == "__main__":
    print("=" * 60)
    print("Townsquare - Cosmos DB Emulator Initialization")
    print("=" * 60)
    asyncio.run(init_emulator())
