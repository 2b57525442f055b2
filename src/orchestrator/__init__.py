"""Reply orchestrator for ReplyAgent.

This package turns one inbound channel message into at most one outbound
reply, grounded in conversation history, knowledge-base snippets and
order data.

Main Entry Points:
    src.orchestrator.pipeline.ReplyOrchestrator: Runs the reply pipeline.
    src.cli.factory.build_orchestrator: Wires the orchestrator from config.

Supporting Modules:
    persona_resolver: Picks the persona that answers a receiving address.
    handoff: Detects messages that must go to a human.
    context: Loads history, knowledge and order data in parallel.
    prompt_composer: Builds the system instruction and message list.
"""
