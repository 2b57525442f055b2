"""Builds the system instruction and message list for one reply.

The stylistic contract (short replies, one question at a time, at most
two emojis, varied closings) lives only in the prompt text; the model's
output is not validated against it.

A persona with a custom system prompt replaces the generated instruction
entirely. The two are never merged.
"""

import logging

from src.orchestrator.models import (
    ChatTurn,
    ComposedPrompt,
    ConversationContext,
    EffectivePersona,
    InboundEvent,
    RecordSnapshot,
    ScoredKnowledge,
)

logger = logging.getLogger(__name__)

DEFAULT_FORBIDDEN_PHRASES: tuple[str, ...] = (
    "Qualquer dúvida, estou à disposição",
    "Fico no aguardo",
    "Atenciosamente",
    "Estou à disposição",
    "Fico à disposição",
)

CONTACT_TYPE_INSTRUCTIONS = {
    "customer": (
        "VOCÊ ESTÁ ATENDENDO UM CLIENTE.\n"
        "- Seja empático, caloroso e genuinamente prestativo\n"
        "- Se não souber algo, ofereça verificar com a equipe de forma natural"
    ),
    "carrier": (
        "VOCÊ ESTÁ ATENDENDO UMA TRANSPORTADORA.\n"
        "- Seja profissional mas cordial\n"
        "- Foque em informações logísticas: coleta, rastreio, prazos e volumes"
    ),
    "unknown": (
        "VOCÊ ESTÁ ATENDENDO UM CONTATO AINDA NÃO IDENTIFICADO.\n"
        "- Seja cordial e neutro\n"
        "- Descubra com naturalidade como pode ajudar"
    ),
}

STYLE_INSTRUCTIONS = {
    "chatty": 'Escreva como conversa de WhatsApp real, com expressões como "Olha só", "Opa", "Ah!"',
    "concise": "Seja direto mas amigável, sem enrolação",
    "professional": "Tom profissional mas cordial",
}

CLOSING_INSTRUCTIONS = {
    "varied": (
        "VARIE o fechamento a cada mensagem (ou simplesmente não feche), por exemplo:\n"
        '- "Me avisa se precisar de algo!"\n'
        '- "Tô por aqui!"\n'
        '- "Qualquer coisa, chama!"'
    ),
    "none": "NÃO inclua fechamento ou despedida",
    "simple": "Use um fechamento simples e varie sempre",
}

STYLE_CONTRACT = (
    "REGRAS DE FORMATO:\n"
    "1. Respostas curtas: de 3 a 5 linhas conversacionais\n"
    "2. Faça no máximo UMA pergunta por mensagem\n"
    "3. Use no máximo 1 ou 2 emojis por mensagem, nunca como marcador de lista\n"
    "4. Nunca repita o fechamento da mensagem anterior"
)

RECORD_FOUND_INSTRUCTION = (
    "VOCÊ JÁ TEM OS DADOS DO PEDIDO.\n"
    'Nunca diga "vou verificar", "deixa eu ver" ou "um momentinho". '
    "Use os dados abaixo diretamente e informe status e prazos de imediato."
)

RECORD_CONFIRMATION_INSTRUCTION = (
    "Depois de informar os dados, pergunte naturalmente se era esse o pedido "
    'que a pessoa procurava (ex.: "Era sobre esse pedido?").'
)

NO_RECORD_INSTRUCTION = (
    "NENHUM PEDIDO FOI ENCONTRADO.\n"
    '- Se a pessoa perguntar sobre um pedido, peça o número de forma natural: "Qual o número do pedido?"\n'
    "- NUNCA invente status, datas ou números de pedido"
)

SENSITIVE_DATA_RULE = "Nunca revele valores, CPF/CNPJ, endereço completo ou dados bancários."


def render_snapshot(snapshot: RecordSnapshot) -> str:
    """Render a snapshot as a structured context block."""
    lines = [
        "DADOS DO PEDIDO:",
        f"Pedido: {snapshot.order_number}",
    ]
    if snapshot.erp_order_number:
        lines.append(f"Pedido ERP: {snapshot.erp_order_number}")
    lines.append(f"Status: {snapshot.status_label}")
    if snapshot.order_type_label:
        lines.append(f"Tipo: {snapshot.order_type_label}")
    lines.extend([
        f"Entrega prevista: {snapshot.delivery_date}",
        f"Expedição: {snapshot.shipping_date}",
        f"Transportadora: {snapshot.carrier_name}",
        f"Rastreio: {snapshot.tracking_code}",
        f"Destino: {snapshot.municipality or '-'}",
    ])
    if snapshot.freight_modality:
        lines.append(f"Modalidade de frete: {snapshot.freight_modality}")
    lines.append(
        f"Itens: {snapshot.item_count} ({snapshot.total_quantity:g} unidades)"
    )
    if snapshot.volume_count:
        lines.append(
            f"Volumes: {snapshot.volume_count} "
            f"(peso total {snapshot.total_weight_kg:g} kg)"
        )
        for volume in snapshot.volumes:
            parts = [f"  - Volume {volume.volume_number}"]
            if volume.weight_kg is not None:
                parts.append(f"{volume.weight_kg:g} kg")
            if volume.dimensions_cm:
                parts.append(volume.dimensions_cm)
            if volume.packaging_type:
                parts.append(volume.packaging_type)
            lines.append(", ".join(parts))
    return "\n".join(lines)


def render_knowledge(knowledge: list[ScoredKnowledge], snippet_chars: int) -> str:
    """Render knowledge snippets, truncating long bodies."""
    blocks = []
    for hit in knowledge:
        body = hit.item.content.strip()
        if len(body) > snippet_chars:
            body = body[: snippet_chars - 3].rstrip() + "..."
        blocks.append(f"### {hit.item.title}\n{body}")
    return "BASE DE CONHECIMENTO RELEVANTE:\n" + "\n\n".join(blocks)


def render_forbidden(phrases: tuple[str, ...]) -> str:
    lines = ["NUNCA DIGA:"]
    lines.extend(f'- "{phrase}"' for phrase in phrases)
    lines.append('- Assinaturas formais como "Equipe X" ou "Atenciosamente"')
    return "\n".join(lines)


def build_system_prompt(
    persona: EffectivePersona,
    context: ConversationContext,
    contact_type: str,
    snippet_chars: int = 600,
) -> str:
    """Generate the system instruction from persona and context."""
    identity = f"Você é {persona.name}, assistente de atendimento via WhatsApp."
    profile = []
    if persona.tone_of_voice:
        profile.append(f"Tom de voz: {persona.tone_of_voice}")
    if persona.personality:
        profile.append(f"Personalidade: {persona.personality}")
    if persona.language:
        profile.append(f"Responda sempre em {persona.language}")

    sections: list[str] = [identity]
    if profile:
        sections.append("\n".join(profile))

    if context.snapshot is not None:
        sections.append(RECORD_FOUND_INSTRUCTION)
        sections.append(render_snapshot(context.snapshot))
        sections.append(SENSITIVE_DATA_RULE)
    else:
        sections.append(NO_RECORD_INSTRUCTION)

    if context.knowledge:
        sections.append(render_knowledge(context.knowledge, snippet_chars))

    style = STYLE_INSTRUCTIONS.get(persona.conversation_style or "chatty", STYLE_INSTRUCTIONS["professional"])
    sections.append(f"ESTILO: {style}")

    if persona.custom_instructions:
        sections.append(persona.custom_instructions.strip())

    sections.append(CONTACT_TYPE_INSTRUCTIONS.get(contact_type, CONTACT_TYPE_INSTRUCTIONS["unknown"]))

    forbidden = persona.forbidden_phrases or DEFAULT_FORBIDDEN_PHRASES
    sections.append(render_forbidden(forbidden))

    closing = CLOSING_INSTRUCTIONS.get(persona.closing_style or "varied", CLOSING_INSTRUCTIONS["simple"])
    if persona.use_signature and persona.signature:
        signature = f"Se apropriado, termine com a assinatura: _{persona.signature}_"
    else:
        signature = "NÃO inclua assinatura no final."
    sections.append(f"FECHAMENTO:\n{closing}\n{signature}")

    if context.snapshot is not None:
        sections.append(RECORD_CONFIRMATION_INSTRUCTION)

    sections.append(STYLE_CONTRACT)
    return "\n\n".join(sections)


def compose_prompt(
    persona: EffectivePersona,
    context: ConversationContext,
    event: InboundEvent,
    snippet_chars: int = 600,
) -> ComposedPrompt:
    """Compose the full message list for the completion call.

    Layout: [system] + [history marker, when there is history] +
    history in chronological order + the new inbound turn.

    Args:
        persona: Effective persona.
        context: Assembled context.
        event: Inbound event.
        snippet_chars: Maximum characters per knowledge snippet.

    Returns:
        ComposedPrompt.
    """
    custom = (persona.custom_system_prompt or "").strip()
    if custom:
        system = custom
    else:
        system = build_system_prompt(persona, context, event.contact_type, snippet_chars)

    messages: list[dict[str, str]] = [{"role": "system", "content": system}]
    if context.history:
        messages.append({
            "role": "system",
            "content": (
                f"Histórico: as {len(context.history)} mensagens a seguir são a conversa "
                "recente com este contato, da mais antiga para a mais nova."
            ),
        })
        messages.extend(turn.as_message() for turn in context.history)

    sender_label = event.owner_name or "contato"
    inbound = ChatTurn(
        role="user",
        content=f"Mensagem recebida de {sender_label}:\n\n{event.message_text}",
    )
    messages.append(inbound.as_message())

    logger.debug(
        "Prompt composed: custom=%s system_chars=%d messages=%d",
        bool(custom), len(system), len(messages),
    )
    return ComposedPrompt(system=system, messages=messages, used_custom_prompt=bool(custom))
