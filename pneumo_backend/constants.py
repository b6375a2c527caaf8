# Inference service
DEFAULT_GRADIO_BASE_URL = "https://yashwanthsc-pneumopredictor.hf.space"
TARGET_SIZE = 256  # pixels, square
REQUEST_TIMEOUT = 60  # seconds

# Gradio API paths
UPLOAD_PATH = "/gradio_api/upload"
PREDICT_PATH = "/gradio_api/call/predict"
FILE_PATH_PREFIX = "/gradio_api/file="

UPLOAD_FIELD_NAME = "files"
UPLOAD_FILENAME = "xray.png"
UPLOAD_CONTENT_TYPE = "image/png"
FILE_DATA_TYPE = "gradio.FileData"

# Result stream
EVENT_DATA_PREFIX = "data: "

# API Configuration
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
ALLOWED_IMAGE_TYPES = ['image/jpeg', 'image/png', 'image/webp']

# Diagnosis markers
RED_INDICATOR = "\U0001F534"
GREEN_INDICATOR = "\U0001F7E2"
POSITIVE_MARKERS = ("positive", RED_INDICATOR)
NEGATIVE_MARKERS = ("not detected", "negative", GREEN_INDICATOR)

GENERIC_ERROR_MESSAGE = "Analysis failed. Please try again."

# Detection status
class DetectionStatus:
    DETECTED = "detected"
    NOT_DETECTED = "not_detected"
    ERROR = "error"
