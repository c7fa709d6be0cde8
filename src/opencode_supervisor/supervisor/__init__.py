"""Task supervisor for OpenCode coding sessions.

The supervisor never trusts what the agent *says* it did.  Success is read
from machine-emitted fields only:

- tool exit codes reported in each tool part's metadata, and
- the session summary kept by the OpenCode server (files changed,
  additions, deletions) plus its diff endpoint.

Text produced by the agent is carried into the report but never used to
decide whether a tool failed or whether the task is done.  Output that
merely contains the word "Error" is legitimate content (test names, log
lines, source code) far more often than it is a failure signal.
"""
