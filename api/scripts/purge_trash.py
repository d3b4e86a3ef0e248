import argparse
import logging
from datetime import datetime, timedelta

from sqlmodel import Session

from docsign.db import engine
from docsign.retention import purge_trashed

parser = argparse.ArgumentParser(description="Permanently delete documents that sat in the trash too long.")
parser.add_argument("--days", type=int, default=30, help="purge documents trashed more than this many days ago")
parser.add_argument("--dry-run", action="store_true", help="list matching documents without deleting them")
args = parser.parse_args()

logging.basicConfig(level=logging.INFO)

cutoff = datetime.utcnow() - timedelta(days=args.days)
with Session(engine) as session:
    ids = purge_trashed(session, cutoff, dry_run=args.dry_run)
    verb = "Would purge" if args.dry_run else "Purged"
    print(f"{verb} {len(ids)} document(s): {', '.join(str(i) for i in ids) or '-'}")
