"""Sample run set: three opening prompts, each answered by several models."""

from convotree.models import Role, Run, Turn


def _run(run_id: str, *turns: tuple[Role, str, str | None]) -> Run:
    return Run(
        id=run_id,
        turns=[Turn(role=role, content=content, model=model) for role, content, model in turns],
    )


U, A = Role.USER, Role.ASSISTANT

SAMPLE_RUNS: list[Run] = [
    _run(
        "reason_variant_a",
        (U, "What is the reason this works?", None),
        (A, "It succeeds because the latch transfers the load into the frame, "
            "which distributes stress evenly.", "chatgpt-4o-latest"),
        (U, "Can you explain that frame distribution more plainly?", None),
        (A, "Imagine the frame as a loop of helpers: each helper takes a small "
            "portion of the weight so no one breaks a sweat.", "chatgpt-4o-latest"),
    ),
    _run(
        "reason_variant_b",
        (U, "What is the reason this works?", None),
        (A, "The mechanism relies on counterbalancing forces; once they align, "
            "the motion feels effortless.", "gpt-4o-mini"),
        (U, "Can you explain that frame distribution more plainly?", None),
        (A, "Think of it like a playground seesaw: when each side carries the "
            "right amount of weight, the board glides smoothly.", "gpt-4o-mini"),
    ),
    _run(
        "reason_variant_c",
        (U, "What is the reason this works?", None),
        (A, "It functions because the latch seats flush against the base, "
            "creating a compression seal that resists slipping.", "gpt-4o-mini"),
        (U, "Can you explain that frame distribution more plainly?", None),
        (A, "Picture a mason stacking bricks: the mortar spreads the pressure "
            "so the wall doesn't crumble under load.", "gpt-4o-mini"),
    ),
    _run(
        "why_variant_a",
        (U, "Why does this work?", None),
        (A, "Because we constrain the motion at three points, the system "
            "stabilizes and resists wobble.", "gpt-3.5-turbo"),
        (U, "What if one of those points loosens over time?", None),
        (A, "Then you would notice a slight sway; tightening the joint "
            "reintroduces that third constraint and steadies the rig.", "gpt-3.5-turbo"),
    ),
    _run(
        "why_variant_b",
        (U, "Why does this work?", None),
        (A, "The design channels energy along the stiffest members, so flex "
            "never gathers in one brittle spot.", "gpt-3.5-turbo"),
        (U, "What if one of those points loosens over time?", None),
        (A, "We'd shim the connection or replace the fastener, anything that "
            "restores the original energy path.", "gpt-3.5-turbo"),
    ),
    _run(
        "how_variant_a",
        (U, "How does it work?", None),
        (A, "First, a sensor samples the input. A small controller compares it "
            "to the reference and instructs the actuator to adjust.", "chatgpt-4o-latest"),
        (U, "Can it adapt to sudden spikes?", None),
        (A, "Yes. The controller keeps a buffer of recent readings, so when it "
            "spots a spike it nudges the actuator in smaller, faster bursts.",
            "chatgpt-4o-latest"),
    ),
    _run(
        "how_variant_b",
        (U, "How does it work?", None),
        (A, "A lightweight agent relays your request to a graph of tools. The "
            "graph resolves which tool is capable and orchestrates the call.", "gpt-4o"),
        (U, "Can it adapt to sudden spikes?", None),
        (A, "If the incoming volume jumps, the orchestrator spins up parallel "
            "tool calls and merges their results before replying.", "gpt-4o"),
    ),
]
