import argparse
import json
import os
import sys

# Add project root to path (go up from scripts/pipeline/ to backend)
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, PROJECT_ROOT)

from tqdm import tqdm

from app.core.config import LOG_LEVEL
from app.core.logging import configure_logging
from app.services.document_service import PdfTextSource, analyze_document

DATA_DIR = os.path.join(PROJECT_ROOT, "data")
RAW_DIR = os.path.join(DATA_DIR, "raw_pdfs")
OUTPUT_DIR = os.path.join(DATA_DIR, "analyzed_documents")


def process_pdf(file_path: str, output_path: str) -> bool:
    """Analyzes one PDF and writes the full analysis as JSON.

    Args:
        file_path (str): Path to the PDF.
        output_path (str): Where to write the JSON.

    Returns:
        bool: True if the file was analyzed, False if it could not be opened.
    """
    with open(file_path, "rb") as f:
        content = f.read()

    try:
        source = PdfTextSource(content)
    except ValueError as e:
        print(f"Skipping {os.path.basename(file_path)}: {e}")
        return False

    with source:
        analysis = analyze_document(
            source,
            document_id=0,
            total_pages=source.page_count,
            filename=os.path.basename(file_path),
            pause=lambda: None,
        )

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(analysis.model_dump(mode="json"), f, ensure_ascii=False, indent=2)
    return True


def main():
    parser = argparse.ArgumentParser(description="Analyze a folder of PDFs to JSON")
    parser.add_argument("--input", default=RAW_DIR, help="Folder containing PDFs")
    parser.add_argument("--output", default=OUTPUT_DIR, help="Folder for JSON results")
    parser.add_argument("--force", action="store_true", help="Overwrite existing results")
    args = parser.parse_args()

    # Keep per-page logs out of the progress bar
    configure_logging(level="WARNING" if LOG_LEVEL == "INFO" else LOG_LEVEL)

    if not os.path.isdir(args.input):
        print(f"Directory not found: {args.input}")
        return

    os.makedirs(args.output, exist_ok=True)
    files = sorted(f for f in os.listdir(args.input) if f.lower().endswith(".pdf"))

    processed_cnt = 0
    skipped_cnt = 0
    for name in tqdm(files, desc="Analyzing PDFs"):
        output_path = os.path.join(args.output, os.path.splitext(name)[0] + ".json")
        if os.path.exists(output_path) and not args.force:
            skipped_cnt += 1
            continue
        if process_pdf(os.path.join(args.input, name), output_path):
            processed_cnt += 1

    print(f"Done. Analyzed {processed_cnt} files, skipped {skipped_cnt}.")


if __name__ == "__main__":
    main()
