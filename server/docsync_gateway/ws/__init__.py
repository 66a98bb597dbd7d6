"""Real-time broadcast: subscriber bus and collection poller."""
