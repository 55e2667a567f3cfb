from .time_utils import local_now, local_today

__all__ = ['local_now', 'local_today']
