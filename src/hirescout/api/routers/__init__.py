from . import enrichment, searches, webhooks

__all__ = ["enrichment", "searches", "webhooks"]
