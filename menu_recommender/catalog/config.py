"""
Catalog ingestion configuration.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class IngestionConfig:
    """
    Where raw exports are read from and canonical CSVs are written to.
    """

    raw_data_dir: Path = Path("menu_recommender/data/raw")
    processed_data_dir: Path = Path("menu_recommender/data")
    raw_items_filename: str = "menu_items.csv"
    raw_categories_filename: str = "categories.csv"
    raw_order_lines_filename: str = "order_items.csv"

    @property
    def raw_items_path(self) -> Path:
        return self.raw_data_dir / self.raw_items_filename

    @property
    def raw_categories_path(self) -> Path:
        return self.raw_data_dir / self.raw_categories_filename

    @property
    def raw_order_lines_path(self) -> Path:
        return self.raw_data_dir / self.raw_order_lines_filename


DEFAULT_INGESTION_CONFIG = IngestionConfig()
