import pandas as pd
from typing import Dict
from quran_quiz.infrastructure.repositories.verse_repository import VerseRepository
from sqlalchemy.orm import Session
import logging
import io

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["surah", "ayah", "arabic_text"]


def process_verse_upload(db: Session, file_content: bytes, filename: str) -> Dict:
    """
    Import verses from a CSV or Excel sheet with columns surah, ayah,
    arabic_text and optionally translation_en. Existing (surah, ayah) rows
    are updated in place.
    """
    try:
        logger.info(f"Processing verse upload: {filename}")
        if filename.endswith(".csv"):
            df = pd.read_csv(io.BytesIO(file_content))
        elif filename.endswith((".xlsx", ".xls")):
            df = pd.read_excel(io.BytesIO(file_content))
        else:
            raise ValueError("Unsupported file format. Please upload CSV or XLSX.")

        # Clean column names
        df.columns = [str(c).strip().lower() for c in df.columns]

        for col in REQUIRED_COLUMNS:
            if col not in df.columns:
                raise ValueError(f"Missing required column: {col}")

        repo = VerseRepository(db)
        inserted = 0
        updated = 0
        failed = 0
        errors = []

        for index, row in df.iterrows():
            try:
                surah = int(row["surah"])
                ayah = int(row["ayah"])
                if not 1 <= surah <= 114:
                    raise ValueError(f"Surah {surah} out of range 1-114")
                if ayah < 1:
                    raise ValueError(f"Ayah {ayah} must be positive")

                if pd.isna(row["arabic_text"]) or not str(row["arabic_text"]).strip():
                    raise ValueError("arabic_text is empty")
                arabic_text = str(row["arabic_text"]).strip()

                translation = None
                if "translation_en" in df.columns and not pd.isna(row["translation_en"]):
                    translation = str(row["translation_en"]).strip()

                _, created = repo.upsert(surah, ayah, arabic_text, translation)
                if created:
                    inserted += 1
                else:
                    updated += 1
            except Exception as e:
                failed += 1
                # Row numbers as seen in a spreadsheet (header is row 1)
                errors.append(f"Row {index + 2}: {e}")

        db.commit()
        logger.info(f"Verse upload {filename}: {inserted} inserted, {updated} updated, {failed} failed")
        return {
            "total_rows": len(df),
            "inserted": inserted,
            "updated": updated,
            "failed": failed,
            "errors": errors,
        }
    except ValueError:
        db.rollback()
        raise
    except Exception as e:
        logger.error(f"Verse upload failed for {filename}: {e}", exc_info=True)
        db.rollback()
        raise
