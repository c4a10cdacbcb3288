"""
Excel Order Ledger with Concurrency Control

Appends placed orders, with their delivery estimate, to an Excel
workbook. Writes from concurrent workers are serialized by a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

DATA_DIR = Path(settings.data_directory)
ORDERS_FILENAME = "orders.xlsx"


def orders_file() -> Path:
    return DATA_DIR / ORDERS_FILENAME


def orders_lock() -> Path:
    return DATA_DIR / f"{ORDERS_FILENAME}.lock"


class ExcelManager:
    """Thread-safe Excel order ledger."""

    LOCK_TIMEOUT = settings.excel_lock_timeout

    ORDER_COLUMNS = [
        "order_id",
        "restaurant_id",
        "date_time",
        "customer_name",
        "delivery_address",
        "city",
        "state",
        "zip_code",
        "items",
        "special_instructions",
        "subtotal",
        "tax",
        "delivery_fee",
        "total_amount",
        "payment_method",
        "payment_id",
        "order_status",
        "estimated_minutes",
        "estimated_delivery_time",
        "exported_at",
    ]

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        if not DATA_DIR.exists():
            DATA_DIR.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {DATA_DIR}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
        return pd.DataFrame(columns=cls.ORDER_COLUMNS)

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """Append an order row to the ledger under the file lock."""
        cls._ensure_data_dir()

        order_id = order_data.get("order_id", 0)
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            with FileLock(str(orders_lock()), timeout=cls.LOCK_TIMEOUT):
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = cls._load_or_create_df(orders_file())

                export_time = datetime.now().isoformat()
                new_row = {
                    "order_id": order_id,
                    "restaurant_id": order_data.get("restaurant_id"),
                    "date_time": order_data.get("created_at") or export_time,
                    "customer_name": order_data.get("customer_name"),
                    "delivery_address": order_data.get("delivery_address"),
                    "city": order_data.get("city"),
                    "state": order_data.get("state"),
                    "zip_code": order_data.get("zip_code"),
                    "items": order_data.get("items"),
                    "special_instructions": order_data.get("special_instructions"),
                    "subtotal": order_data.get("subtotal"),
                    "tax": order_data.get("tax"),
                    "delivery_fee": order_data.get("delivery_fee"),
                    "total_amount": order_data.get("total_amount"),
                    "payment_method": order_data.get("payment_method"),
                    "payment_id": order_data.get("payment_id"),
                    "order_status": order_data.get("order_status"),
                    "estimated_minutes": order_data.get("estimated_minutes"),
                    "estimated_delivery_time": order_data.get("estimated_delivery_time"),
                    "exported_at": export_time,
                }

                new_df = pd.DataFrame([new_row], columns=cls.ORDER_COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(orders_file()), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Get all orders from the ledger."""
        if not orders_file().exists():
            return []

        try:
            df = pd.read_excel(orders_file(), engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading orders: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the ledger and its lock file."""
        try:
            for f in [orders_file(), orders_lock()]:
                if f.exists():
                    f.unlink()
            logger.info("Order ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing files: {e}")
            return False
