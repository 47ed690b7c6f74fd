import asyncio
import sys
import os

sys.path.append(os.getcwd())

from app.db.session import AsyncSessionLocal, engine
from app.services.game_lifecycle import GameLifecycleTracker
from app.services.snapshot_store import SnapshotStore

async def main(limit: int = 10):
    store = SnapshotStore(AsyncSessionLocal, GameLifecycleTracker())
    summary = await store.snapshot_summary(limit=limit)

    print("Snapshots by type:")
    if not summary["by_type"]:
        print("  (none yet)")
    for snapshot_type, count in sorted(summary["by_type"].items()):
        print(f"  {snapshot_type:<10} {count}")

    print(f"\nMost recent {limit}:")
    for row in summary["recent"]:
        ts = row["snapshot_timestamp"].strftime("%Y-%m-%d %H:%M:%S")
        print(f"  {ts}  {row['snapshot_type']:<10} {row['sport_key']:<24} {row['game_id']}")

    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main(int(sys.argv[1]) if len(sys.argv) > 1 else 10))
