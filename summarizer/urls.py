from django.urls import path
from . import views

urlpatterns = [
    # Slash command endpoint (GET answers as a liveness probe)
    path('slack/commands/', views.slack_commands, name='slack_commands'),

    # Worker endpoint for the out-of-process relay
    path('relay/summarize/', views.relay_summarize, name='relay_summarize'),

    # Health check endpoint
    path('health/', views.health, name='health_check'),
]
