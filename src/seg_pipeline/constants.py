# src/seg_pipeline/constants.py
"""
Global constants for the segmentation data pipeline.

Centralizes configuration defaults and layout constants.
"""

# ============================================
# Batch Layout Constants
# ============================================
NUM_COLOR_CHANNELS = 3   # Decoded BGR channels
MASK_CHANNEL = 3         # Index of the binarized mask channel
NUM_OUTPUT_CHANNELS = 4  # Colour channels + mask
LABEL_DIM = 2            # Manipulation point (x, y)

# ============================================
# Configuration Defaults
# ============================================
DEFAULT_BATCH_SIZE = 8
DEFAULT_MEAN_VALUES = (0.0, 0.0, 0.0)
DEFAULT_CROP_SIZE = 0    # 0 disables cropping
DEFAULT_SHOW_LEVEL = 0

# Manifest grammars
EXTENDED_RECORD_FIELDS = 4  # image mask mp_x mp_y
BASIC_RECORD_FIELDS = 2     # image mask

# ============================================
# Threading Constants
# ============================================
PRODUCER_THREAD_NAME = "seg-pipeline-producer"
PRODUCER_JOIN_TIMEOUT_S = 30.0
NUM_BUFFER_SLOTS = 2

# ============================================
# Preview Constants
# ============================================
PREVIEW_POINT_RADIUS = 5
PREVIEW_POINT_COLOR = (0, 0, 255)  # BGR red
PREVIEW_WAIT_MS = 30
PREVIEW_IMAGE_WINDOW = "I"
PREVIEW_MASK_WINDOW = "I_label"

# ============================================
# Logging Constants
# ============================================
DEFAULT_LOG_DIR = "./artifacts/logs"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_FILE_BACKUP_COUNT = 5
