"""
HabitLens - трекер привычек с AI инсайтами и уведомлениями
"""

__version__ = "1.0.0"
