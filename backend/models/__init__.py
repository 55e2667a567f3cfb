from models.feed_consumption import FeedConsumption, FeedType, FeedUnit
from models.feed_stock_summary import FeedStockSummary
from models.feed_stock_audit import FeedStockAudit

__all__ = ['FeedConsumption', 'FeedStockAudit', 'FeedStockSummary', 'FeedType', 'FeedUnit',]
