"""
ARQ Background Worker Runner
Run this as a separate process: python run_worker.py
"""

import logging
import sys
from pathlib import Path

from arq import run_worker

sys.path.insert(0, str(Path(__file__).parent))

from tattoo_crm.worker import WorkerSettings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("🚀 Starting background worker...")
    try:
        run_worker(WorkerSettings)
    except KeyboardInterrupt:
        logger.info("👋 Worker stopped by user")
    except Exception as e:
        logger.error(f"❌ Worker crashed: {e}")
        sys.exit(1)
