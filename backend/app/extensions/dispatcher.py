from app.services.webhook_dispatcher import WebhookDispatcher

dispatcher = WebhookDispatcher()
