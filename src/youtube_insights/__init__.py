"""
YouTube Insights

Turns a YouTube video into topics and questions, embeds them together with
the video's comment threads and either matches every topic against the
comments or rewrites the topics as a simplified summary.
"""

__version__ = "0.1.0"
