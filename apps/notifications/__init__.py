"""Notifications app package.

In-app notifications: the model, the client delivery bridge with local
and push notifications, Celery fan-out tasks and the inbox API.
"""
