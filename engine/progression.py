"""Experience points, levels, investor titles and the leaderboard."""

from __future__ import annotations

from models.account import Account

INVESTMENT_PER_XP = 100  # 1 XP per whole 100 invested
XP_PER_LEVEL = 100
LEADERBOARD_SIZE = 20


def award_investment_xp(account: Account, amount: float) -> int:
    """Credit XP for an investment of *amount* and recompute the level.

    Returns the XP gained.
    """
    gained = int(amount // INVESTMENT_PER_XP)
    account.experience_points += gained
    account.level = account.experience_points // XP_PER_LEVEL
    account.experience_to_next_level = (account.level + 1) * XP_PER_LEVEL
    return gained


def leaderboard(accounts: list[Account], limit: int = LEADERBOARD_SIZE) -> list[Account]:
    """Accounts ranked by portfolio value, best first."""
    return sorted(accounts, key=lambda a: a.portfolio_value, reverse=True)[:limit]


def investor_title(level: int) -> str:
    """Display title for a level."""
    if level < 5:
        return "Novice Investor"
    if level < 10:
        return "Intermediate Investor"
    return "Expert Investor"
