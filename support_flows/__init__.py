"""
Support Flows.

Flow graph core behind the support console's visual automation builder.
This package provides:

1. Node Types:
   - Entry nodes (start, trigger)
   - Messaging and interactive nodes (message, buttons, select, forms)
   - AI nodes (ai agent, question classifier, llm)
   - Logic nodes (condition, wait, start flow, end)
   - Conversation actions and integrations

2. Flow Graph:
   - Ports derived from node data
   - Invariant-preserving edits with dangling edge pruning
   - Validation reports grouped by node

3. Semantics handed to the execution runtime:
   - {{variable}} resolution across contact, flow and custom scopes
   - Condition rule evaluation with a guaranteed fallback branch
   - Sub-flow invocation contract
   - Trigger matching and reply routing

4. Catalog and persistence:
   - camelCase JSON documents
   - Publish gated on validation
"""

__version__ = "1.0.0"
