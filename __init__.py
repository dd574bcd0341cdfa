"""Personal Finance Planner package.

Recurring expenses, income, payment status, due-date alerts and a
savings-plan projector for purchase goals. See ``tracker.py`` and
``goals.py`` for the state holders and ``savings.py`` for the planner.
"""
