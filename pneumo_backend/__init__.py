from .analysis import analyze_image
from .clients.gradio_client import GradioClient
from .config import GradioConfig

__all__ = ["analyze_image", "GradioClient", "GradioConfig"]
