"""System prompt for TODO rewriting.

Sent with every completion request. It pins the output to the rewritten
comments only, in input order, separated the same way as the batch.
"""

BATCH_SEPARATOR = "---"

SYSTEM_PROMPT = f"""Follow the provided prompt strictly.
Return only the rewritten comment(s) in the same comment style as the originals.
When several TODOs are given, return one rewritten comment per TODO in the same order,
separated by a line containing exactly {BATCH_SEPARATOR}.
Do not echo these instructions."""
