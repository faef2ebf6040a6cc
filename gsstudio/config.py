"""
Defaults and fixed constants for dataset preparation and segmentation.
"""

# Extraction fallbacks when probing failed or was skipped
DEFAULT_FPS = 30.0
DEFAULT_RESOLUTION = (1920, 1080)  # (width, height)

# Workspace layout
WORKSPACES_DIR = "workspaces"
PROJECT_FILENAME = "project.yaml"
FRAMES_DIRNAME = "frames"
MASKS_DIRNAME = "masks"

# Frames are numbered from 1 with a 4-digit zero-padded index
FRAME_EXTENSION = ".png"
FRAME_PATTERN = "frame_%04d.png"  # ffmpeg output pattern
FRAME_NAME_TEMPLATE = "frame_{:04d}.png"

# SAM2 ONNX export
MODEL_NAME = "sam2_hiera_tiny"
ENCODER_SUFFIX = "_encoder.onnx"
DECODER_SUFFIX = "_decoder.onnx"
INTRA_OP_THREADS = 4

# Network input geometry and normalization (fixed by the pretrained weights)
MODEL_INPUT_SIZE = 1024
MASK_INPUT_SIZE = 256
PIXEL_MEAN = (123.675, 116.28, 103.53)  # R, G, B
PIXEL_STD = (58.395, 57.12, 57.375)

# Decoder logits above this value are foreground
MASK_THRESHOLD = 0.0

# Subprocess timeouts in seconds
PROBE_TIMEOUT_S = 30
EXTRACT_TIMEOUT_S = 3600

DEFAULT_TARGET_ID = "photographer_01"
