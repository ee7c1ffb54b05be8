from .validators import clip_text, count_words

__all__ = ["clip_text", "count_words"]
