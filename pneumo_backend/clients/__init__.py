from .gradio_client import GradioClient, parse_event_stream

__all__ = ["GradioClient", "parse_event_stream"]
