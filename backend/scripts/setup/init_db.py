import os
import sys

# Add parent directory to path to allow importing from backend modules
sys.path.append(os.path.join(os.path.dirname(__file__), "..", ".."))

from sqlmodel import Session, select
from app.core.database import engine, create_db_and_tables
from app.crud.crud import get_reader_profile
from app.models.models import ReaderProfile


def init_db(reader_ids=None):
    """Creates all tables and, optionally, neutral profiles for the given readers.

    Args:
        reader_ids (Optional[List[str]]): Readers to create profiles for.
    """
    print("Creating tables...")
    create_db_and_tables()

    if not reader_ids:
        print("Done.")
        return

    with Session(engine) as session:
        for reader_id in reader_ids:
            existing = session.exec(
                select(ReaderProfile).where(ReaderProfile.reader_id == reader_id)
            ).first()
            if existing:
                print(f"Profile for {reader_id} already exists. Skipping.")
                continue
            get_reader_profile(session, reader_id)
            print(f"Created profile for {reader_id}")

    print("Done.")


if __name__ == "__main__":
    init_db(sys.argv[1:])
