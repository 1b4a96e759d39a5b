from dataclasses import dataclass
import os
from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    default_academic_year: str = os.getenv("GRADECORE_DEFAULT_ACADEMIC_YEAR", "2024-2025")

    batch_max_workers: int = int(os.getenv("GRADECORE_BATCH_MAX_WORKERS", "4"))
    batch_chunk_size: int = int(os.getenv("GRADECORE_BATCH_CHUNK_SIZE", "200"))


settings = Settings()
