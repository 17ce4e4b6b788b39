"""Collection run across all configured devices."""

import logging
from typing import List, Optional

from .aggregator import build_daily_entries
from .client import TelraamApiError, TelraamClient
from .file_store import StorageError
from .landing_page import generate_landing_page
from .merger import group_by_month, is_valid_month, reading_timestamp
from .models import (
    CollectionResult,
    CollectionSummary,
    DeviceConfig,
    DeviceMetadata,
    Reading,
)
from .storage import PersistenceStore
from .timeutils import calculate_date_range, utc_now_iso


class CollectionError(Exception):
    """Raised when one or more devices failed during a run."""

    def __init__(self, summary: CollectionSummary):
        self.summary = summary
        super().__init__(
            f"Collection completed with {summary.failed_devices} error(s)"
        )


class DataCollector:
    """Fetches, stores and aggregates data for a list of devices."""

    def __init__(
        self,
        client: TelraamClient,
        store: PersistenceStore,
        devices: List[DeviceConfig],
        days_to_fetch: int = 31,
        write_landing_page: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.store = store
        self.devices = devices
        self.days_to_fetch = days_to_fetch
        self.write_landing_page = write_landing_page
        self.logger = logger or logging.getLogger(__name__)

    def collect_all_devices(self) -> CollectionSummary:
        """
        Collect every configured device, then write metadata and the landing page.

        A failing device does not stop the others.

        Returns:
            Summary of the run

        Raises:
            CollectionError: At least one device failed
            StorageError: Writing metadata or the landing page failed
        """
        start_time = utc_now_iso()
        self.logger.info("Starting data collection for %d devices", len(self.devices))
        self.logger.info("Fetching last %d days of data", self.days_to_fetch)

        results: List[CollectionResult] = []
        metadata: List[DeviceMetadata] = []

        for device in self.devices:
            result = self.collect_single_device(device)
            results.append(result)
            metadata.append(
                DeviceMetadata(
                    id=device.id,
                    name=device.name,
                    location=device.location,
                    last_updated=utc_now_iso(),
                    total_data_points=result.data_points_collected,
                )
            )

        self.store.save_device_metadata(metadata)
        if self.write_landing_page:
            generate_landing_page(self.store)

        summary = CollectionSummary(
            total_devices=len(results),
            successful_devices=sum(1 for r in results if r.success),
            failed_devices=sum(1 for r in results if not r.success),
            results=results,
            start_time=start_time,
            end_time=utc_now_iso(),
        )
        self.log_summary(summary)

        if summary.failed_devices > 0:
            raise CollectionError(summary)
        return summary

    def collect_single_device(self, device: DeviceConfig) -> CollectionResult:
        """Fetch and persist one device; failures are captured in the result."""
        self.logger.info("Processing device: %s (%s)", device.name, device.id)

        try:
            date_range = calculate_date_range(self.days_to_fetch)
            readings = self.client.fetch_traffic_data(device.id, date_range)

            if not readings:
                self.logger.warning("No data returned for device %s", device.id)
                return CollectionResult(device_id=device.id, success=True)

            total = self.save_device_data(device.id, readings)
            return CollectionResult(
                device_id=device.id,
                success=True,
                data_points_collected=total,
                last_updated=self._newest_timestamp(readings),
            )

        except (TelraamApiError, StorageError) as e:
            message = self.format_error(e)
            self.logger.error("Failed to collect data for device %s: %s", device.id, message)
            return CollectionResult(device_id=device.id, success=False, error=message)

    def save_device_data(self, device_id: str, readings: List[Reading]) -> int:
        """
        Save readings month by month and refresh the daily aggregates.

        Daily totals are rebuilt from the merged monthly file rather than from
        this batch alone, so partial-day batches accumulate across runs.

        Returns:
            Number of readings from this batch that were stored
        """
        by_month = group_by_month(readings)
        grouped = sum(len(points) for points in by_month.values())
        if grouped < len(readings):
            self.logger.warning(
                "Dropped %d data point(s) for device %s without a date timestamp",
                len(readings) - grouped,
                device_id,
            )

        for month in [m for m in by_month if not is_valid_month(m)]:
            points = by_month.pop(month)
            grouped -= len(points)
            self.logger.warning(
                "Dropped %d data point(s) for device %s with malformed date %r",
                len(points),
                device_id,
                points[0]["date"],
            )

        for month in sorted(by_month):
            self.store.save_monthly(device_id, month, by_month[month])

            record = self.store.load_monthly(device_id, month)
            month_readings = record.data if record is not None else by_month[month]
            self.store.save_daily(device_id, month, build_daily_entries(month_readings))

        return grouped

    def log_summary(self, summary: CollectionSummary) -> None:
        self.logger.info("Collection complete!")
        self.logger.info(
            "Successfully processed: %d/%d devices",
            summary.successful_devices,
            summary.total_devices,
        )
        if summary.failed_devices > 0:
            self.logger.error("Errors encountered:")
            for result in summary.results:
                if not result.success:
                    self.logger.error("  - Device %s: %s", result.device_id, result.error)
        self.logger.info("Total data points collected: %d", summary.total_data_points)

    @staticmethod
    def format_error(error: Exception) -> str:
        if isinstance(error, TelraamApiError):
            status = error.status_code if error.status_code is not None else "unknown"
            return f"API Error ({status}): {error}"
        return str(error)

    @staticmethod
    def _newest_timestamp(readings: List[Reading]) -> Optional[str]:
        stamps = [ts for ts in map(reading_timestamp, readings) if ts is not None]
        if not stamps:
            return None
        return max(stamps)
