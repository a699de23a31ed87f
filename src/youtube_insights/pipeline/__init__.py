"""Application nodes of the YouTube insights pipeline."""

from .builder import build_pipeline
from .content import ContentBatchFlow, ProcessContent
from .preprocess import CommentsEmbedsProcessing, ExtractTopicsAndQuestions, ProcessYoutubeURL
from .render import RenderSimilarityReport, RenderTopicSummary
from .similarity import SimilarityBatchFlow, TopicsSimilaritySearch

__all__ = [
    "build_pipeline",
    "CommentsEmbedsProcessing",
    "ContentBatchFlow",
    "ExtractTopicsAndQuestions",
    "ProcessContent",
    "ProcessYoutubeURL",
    "RenderSimilarityReport",
    "RenderTopicSummary",
    "SimilarityBatchFlow",
    "TopicsSimilaritySearch",
]
