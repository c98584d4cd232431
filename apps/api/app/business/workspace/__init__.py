from app.business.workspace.models import (
    ActivityFeedItem,
    Client,
    ClientPayment,
    Deal,
    Expense,
    Invoice,
    Notification,
    Profile,
    RevenueEntry,
    RevenueTarget,
    Task,
    UserAchievement,
    UserStats,
)

__all__ = [
    "Profile",
    "Task",
    "Client",
    "Deal",
    "Invoice",
    "Expense",
    "ClientPayment",
    "RevenueEntry",
    "RevenueTarget",
    "Notification",
    "ActivityFeedItem",
    "UserAchievement",
    "UserStats",
]
