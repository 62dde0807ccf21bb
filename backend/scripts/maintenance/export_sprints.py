import argparse
import os
import sys

# Add project root to path (go up from scripts/maintenance/ to backend)
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

import pandas as pd
from sqlmodel import Session, select

from app.core.database import engine
from app.models.models import Sprint
from app.schemas.common import SprintStatus

EXPORT_COLUMNS = [
    "id",
    "reader_id",
    "document_id",
    "title",
    "strategy",
    "sprint_type",
    "start_page",
    "end_page",
    "estimated_time_seconds",
    "actual_time_seconds",
    "pages_actually_completed",
    "completion_quality",
    "efficiency_percentage",
    "completion_percentage",
    "performance_level",
    "completed_at",
]


def sprints_to_frame(sprints) -> pd.DataFrame:
    """Builds one row per completed sprint, oldest first.

    Args:
        sprints (Iterable[Sprint]): Sprints to export.

    Returns:
        pd.DataFrame: The export table with EXPORT_COLUMNS.
    """
    rows = [
        {col: getattr(s, col) for col in EXPORT_COLUMNS}
        for s in sprints
        if s.status == SprintStatus.COMPLETED.value
    ]
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    if not df.empty:
        df = df.sort_values("completed_at").reset_index(drop=True)
    return df


def main():
    parser = argparse.ArgumentParser(description="Export completed sprints to CSV")
    parser.add_argument("output", help="Path of the CSV file to write")
    parser.add_argument("--reader", help="Only export this reader's sprints")
    args = parser.parse_args()

    with Session(engine) as session:
        statement = select(Sprint)
        if args.reader:
            statement = statement.where(Sprint.reader_id == args.reader)
        df = sprints_to_frame(session.exec(statement).all())

    df.to_csv(args.output, index=False)
    print(f"Exported {len(df)} sprints to {args.output}")


if __name__ == "__main__":
    main()
