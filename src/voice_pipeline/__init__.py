"""voice_pipeline package.

Contains modules for pulling brand/molecule voice and interaction records
from Feishu Bitable tables, normalizing them into rectangular
row × entity matrices, and managing per-view dashboard state.

Architecture:
- Feishu Bitable → parsed records → aggregation matrix
- Pydantic models validate records at the ingestion boundary
- Optional MongoDB snapshot of raw records for offline aggregation
- pandas frames are the hand-off format for chart/table collaborators
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
