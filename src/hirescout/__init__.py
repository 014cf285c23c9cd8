"""
HireScout - hiring-signal lead generation.

Runs several job-search scrapers concurrently for one search, merges the
companies, jobs and job posters they surface without duplicates, and
enriches companies with contacts through a shared cache-first pipeline.
"""

__version__ = "0.1.0"
__app_name__ = "hirescout"
