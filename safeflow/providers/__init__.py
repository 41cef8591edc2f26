"""External collaborators: coordination service and hardware signer process."""
