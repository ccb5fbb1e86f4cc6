from app.queue.broker import JobBroker, job_identity

__all__ = ["JobBroker", "job_identity"]
