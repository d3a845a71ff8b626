"""
Job Manager Module

Handles status tracking for background work such as video generation batches.
"""

import logging
import json
import os
import threading
from typing import Dict, Any, Optional
from datetime import datetime, timezone, timedelta
from pathlib import Path
import uuid

from config import JOBS_FILE

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobManager:
    """Service for managing background job status and tracking"""

    def __init__(self, persistence_file: Optional[str] = JOBS_FILE):
        self.job_status: Dict[str, Dict[str, Any]] = {}
        self.persistence_file = Path(persistence_file) if persistence_file else None
        self._lock = threading.RLock()
        self._load_jobs_from_disk()

    def _load_jobs_from_disk(self):
        """Load jobs from disk on startup"""
        if not self.persistence_file:
            return
        try:
            if self.persistence_file.exists():
                with open(self.persistence_file, 'r') as f:
                    self.job_status = json.load(f)
                logger.info(f"Loaded {len(self.job_status)} jobs from disk")
            else:
                logger.info("No existing jobs file found, starting fresh")
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load jobs from disk: {e}")
            self.job_status = {}

    def _save_jobs_to_disk(self):
        """Save jobs to disk for persistence"""
        if not self.persistence_file:
            return
        tmp_file = self.persistence_file.with_name(self.persistence_file.name + ".tmp")
        try:
            self.persistence_file.parent.mkdir(parents=True, exist_ok=True)
            # Held across the write: one writer at a time
            with self._lock:
                with open(tmp_file, 'w') as f:
                    json.dump(self.job_status, f, indent=2, default=str)
                os.replace(tmp_file, self.persistence_file)
        except OSError as e:
            logger.error(f"Failed to save jobs to disk: {e}")

    def create_job(self, user_email: Optional[str] = None, action_type: Optional[str] = None) -> str:
        """
        Create a new job with unique ID

        Args:
            user_email (str, optional): Email of the requesting user
            action_type (str, optional): Kind of work the job tracks

        Returns:
            str: Unique job ID
        """
        job_id = str(uuid.uuid4())
        with self._lock:
            self.job_status[job_id] = {
                "job_id": job_id,
                "status": "created",
                "progress": "Job created...",
                "user_email": user_email,
                "action_type": action_type,
                "created_at": _now(),
                "updated_at": _now(),
            }
        logger.info(f"Created job {job_id} with action_type: {action_type}")
        self._save_jobs_to_disk()
        return job_id

    def update_job_status(self, job_id: str, status: str, progress: Optional[str] = None,
                          **kwargs) -> None:
        """
        Update job status and progress

        Args:
            job_id (str): Job ID
            status (str): New status
            progress (str, optional): Progress message
            **kwargs: Additional fields to update
        """
        with self._lock:
            if job_id not in self.job_status:
                logger.warning(f"Job {job_id} not found")
                return

            job = self.job_status[job_id]
            job["status"] = status
            job["updated_at"] = _now()
            if progress:
                job["progress"] = progress
            job.update(kwargs)

        self._save_jobs_to_disk()

    def set_job_completed(self, job_id: str, result_data: Dict[str, Any]) -> None:
        """Mark job as completed with result data"""
        with self._lock:
            if job_id not in self.job_status:
                logger.warning(f"Job {job_id} not found")
                return
            self.job_status[job_id].update({"status": "completed", "updated_at": _now(), **result_data})
        self._save_jobs_to_disk()

    def set_job_error(self, job_id: str, error: str) -> None:
        """Mark job as failed with error message"""
        with self._lock:
            if job_id not in self.job_status:
                logger.warning(f"Job {job_id} not found")
                return
            self.job_status[job_id].update({"status": "error", "error": error, "updated_at": _now()})
        self._save_jobs_to_disk()

    def get_job_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        """
        Get job status and information

        Args:
            job_id (str): Job ID

        Returns:
            dict: Copy of the job data or None if not found
        """
        with self._lock:
            job_data = self.job_status.get(job_id)
            if not job_data:
                logger.warning(f"Job {job_id} not found")
                return None
            return json.loads(json.dumps(job_data, default=str))

    def cleanup_old_jobs(self, max_age_hours: int = 24) -> int:
        """
        Clean up jobs older than the given number of hours

        Returns:
            int: Number of jobs cleaned up
        """
        cutoff_time = datetime.now(timezone.utc) - timedelta(hours=max_age_hours)
        with self._lock:
            jobs_to_remove = []
            for job_id, job_data in self.job_status.items():
                try:
                    created_at = datetime.fromisoformat(job_data.get("created_at", ""))
                    if created_at.replace(tzinfo=created_at.tzinfo or timezone.utc) < cutoff_time:
                        jobs_to_remove.append(job_id)
                except (ValueError, TypeError):
                    jobs_to_remove.append(job_id)

            for job_id in jobs_to_remove:
                del self.job_status[job_id]

        if jobs_to_remove:
            logger.info(f"Cleaned up {len(jobs_to_remove)} old jobs")
            self._save_jobs_to_disk()

        return len(jobs_to_remove)


# Global instance with persistence
job_manager = JobManager()
