"""Redis key templates.

Centralized management of the Redis keys used by the scheduler so that
obligation bookkeeping never collides with arq's own keys.
"""


class RedisKeys:
    """Redis key templates and helper methods."""

    # ============================================================================
    # Fetch Obligations
    # ============================================================================

    # Obligation key handed to the job facility, one per source
    # Format: fetch_source:{source_id}
    @staticmethod
    def fetch_obligation(source_id: str) -> str:
        """
        Get the obligation key for a source's recurring fetch.

        Args:
            source_id: Source identifier.

        Returns:
            Obligation key string.
        """
        return f"fetch_source:{source_id}"

    # Pointer to the arq job currently backing an obligation
    # Format: obligation_job:{obligation_key}
    # No TTL: removed on cancel, overwritten on reschedule
    @staticmethod
    def obligation_job(obligation_key: str) -> str:
        """
        Get the pointer key storing the arq job id of an obligation.

        Args:
            obligation_key: Obligation key from fetch_obligation().

        Returns:
            Redis key string.
        """
        return f"obligation_job:{obligation_key}"

    # Lock held while a fetch runs
    # Format: obligation_lock:{obligation_key}
    # TTL: settings.fetch_lock_ttl_seconds
    @staticmethod
    def obligation_lock(obligation_key: str) -> str:
        """
        Get the run-lock key for an obligation.

        Ensures at most one fetch per source runs at a time.

        Args:
            obligation_key: Obligation key from fetch_obligation().

        Returns:
            Redis key string.
        """
        return f"obligation_lock:{obligation_key}"
