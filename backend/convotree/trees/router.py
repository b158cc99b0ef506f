"""FastAPI routes for the conversation session: tree view, mutations, generation."""

from fastapi import APIRouter, Depends, HTTPException, status

from convotree.generation.presets import (
    Preset,
    PresetNotFoundError,
    get_preset,
    load_presets,
)
from convotree.generation.service import GenerationOutcome, GenerationService
from convotree.models import Node, NodeEvaluation, Option, friendly_role_label
from convotree.scoring.service import ScoringService, options_by_score
from convotree.trees.builder import follow_up_depths, unique_run_count
from convotree.trees.schemas import (
    AddNextTurnRequest,
    AddOptionRequest,
    EditNodeRequest,
    EvaluateRequest,
    GenerateRequest,
    MutationResponse,
    NodeResponse,
    OptionResponse,
    PathStepResponse,
    PruneRequest,
    PruneResponse,
    SelectOptionRequest,
    SessionResponse,
    SetRunsRequest,
)
from convotree.trees.service import (
    NodeNotFoundError,
    OptionNotFoundError,
    RunNotFoundError,
    TreeService,
)

router = APIRouter(prefix="/api/session", tags=["session"])


def get_tree_service() -> TreeService:
    """Dependency placeholder, overridden in the app lifespan."""
    raise RuntimeError("TreeService not initialized")


def get_generation_service() -> GenerationService:
    """Dependency placeholder, overridden in the app lifespan."""
    raise RuntimeError("GenerationService not initialized")


def get_scoring_service() -> ScoringService:
    """Dependency placeholder, overridden in the app lifespan."""
    raise RuntimeError("ScoringService not initialized")


# -- Helpers --


def _lookup(
    service: TreeService, node_id: str, option_id: str | None = None
) -> tuple[Node, Option | None]:
    try:
        node = service.get_node(node_id)
        option = service.get_option(node, option_id) if option_id is not None else None
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except OptionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Option not found: {option_id}")
    return node, option


def _node_response(
    node: Node, depths: dict[str, int], evaluation: NodeEvaluation | None
) -> NodeResponse:
    options = []
    for opt in options_by_score(node, evaluation):
        scored = evaluation.scores.get(opt.id) if evaluation else None
        options.append(OptionResponse(
            id=opt.id,
            content=opt.content,
            run_ids=opt.run_ids,
            models=opt.models,
            next_prefix=opt.next_prefix,
            follow_up_depth=depths.get(opt.next_prefix, 0),
            score=scored.score if scored else None,
        ))
    return NodeResponse(
        id=node.id,
        depth=node.depth,
        role=node.role,
        role_label=friendly_role_label(node.role),
        prefix_key=node.prefix_key,
        unique_run_count=unique_run_count(node),
        options=options,
    )


def _snapshot(service: TreeService, generation: GenerationService) -> SessionResponse:
    tree = service.tree
    depths = follow_up_depths(tree)
    layers = [
        [_node_response(n, depths, service.get_evaluation(n.id)) for n in layer]
        for layer in tree.layers
    ]
    path = []
    for step in service.path():
        opt = step.selected_option
        path.append(PathStepResponse(
            node_id=step.node.id,
            depth=step.node.depth,
            role=step.node.role,
            role_label=friendly_role_label(step.node.role),
            selected_option_id=opt.id if opt else None,
            content=opt.content if opt else None,
            models=opt.models if opt else [],
            run_ids=step.run_ids,
            pending=generation.pending(step.node.id, opt.id) if opt else 0,
        ))
    return SessionResponse(
        runs=service.runs,
        root_key=tree.root_key,
        max_depth=tree.max_depth,
        layers=layers,
        path=path,
        selected_map=service.selected_map,
        pending=generation.pending_map,
    )


# -- Session --


@router.get("")
async def get_session(
    service: TreeService = Depends(get_tree_service),
    generation: GenerationService = Depends(get_generation_service),
) -> SessionResponse:
    return _snapshot(service, generation)


@router.post("/reset")
async def reset_session(
    service: TreeService = Depends(get_tree_service),
    generation: GenerationService = Depends(get_generation_service),
) -> SessionResponse:
    service.reset()
    return _snapshot(service, generation)


@router.post("/sample")
async def load_sample(
    service: TreeService = Depends(get_tree_service),
    generation: GenerationService = Depends(get_generation_service),
) -> SessionResponse:
    service.load_sample()
    return _snapshot(service, generation)


@router.put("/runs")
async def set_runs(
    request: SetRunsRequest,
    service: TreeService = Depends(get_tree_service),
    generation: GenerationService = Depends(get_generation_service),
) -> SessionResponse:
    service.set_runs(request.runs)
    return _snapshot(service, generation)


# -- Node mutations --


@router.post("/nodes/{node_id}/select")
async def select_option(
    node_id: str,
    request: SelectOptionRequest,
    service: TreeService = Depends(get_tree_service),
    generation: GenerationService = Depends(get_generation_service),
) -> SessionResponse:
    node, option = _lookup(service, node_id, request.option_id)
    service.select_option(node, option)
    return _snapshot(service, generation)


@router.post("/nodes/{node_id}/options", status_code=status.HTTP_201_CREATED)
async def add_option(
    node_id: str,
    request: AddOptionRequest,
    service: TreeService = Depends(get_tree_service),
) -> MutationResponse:
    node, _ = _lookup(service, node_id)
    new_id = service.add_option(node, request.content, model=request.model)
    return MutationResponse(option_id=new_id, changed=new_id is not None)


@router.post("/nodes/{node_id}/next", status_code=status.HTTP_201_CREATED)
async def add_next_turn(
    node_id: str,
    request: AddNextTurnRequest,
    service: TreeService = Depends(get_tree_service),
) -> MutationResponse:
    node, option = _lookup(service, node_id, request.option_id)
    new_id = service.add_next_turn(
        node, option, request.content, role=request.role, model=request.model
    )
    return MutationResponse(option_id=new_id, changed=new_id is not None)


@router.patch("/nodes/{node_id}")
async def edit_node(
    node_id: str,
    request: EditNodeRequest,
    service: TreeService = Depends(get_tree_service),
) -> MutationResponse:
    node, option = _lookup(service, node_id, request.option_id)
    try:
        service.get_run(request.run_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail=f"Run not found: {request.run_id}")
    if request.run_id not in option.run_ids:
        raise HTTPException(
            status_code=404,
            detail=f"Run {request.run_id} does not pass through option {option.id}",
        )
    new_id = service.edit_node(node, option, request.run_id, request.content)
    return MutationResponse(option_id=new_id, changed=new_id is not None)


@router.post("/prune")
async def prune_runs(
    request: PruneRequest,
    service: TreeService = Depends(get_tree_service),
) -> PruneResponse:
    return PruneResponse(removed=service.prune(request.run_ids))


# -- Generation and scoring --


@router.post("/nodes/{node_id}/generate")
async def generate_next(
    node_id: str,
    request: GenerateRequest,
    service: TreeService = Depends(get_tree_service),
    generation: GenerationService = Depends(get_generation_service),
) -> GenerationOutcome:
    node, option = _lookup(service, node_id, request.option_id)

    requests = request.requests
    temperature = request.temperature
    if requests is None:
        if request.preset_id is None:
            raise HTTPException(status_code=400, detail="Provide requests or a preset_id")
        try:
            preset = get_preset(request.preset_id)
        except PresetNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        requests = preset.models
        if temperature is None:
            temperature = preset.default_temperature

    return await generation.generate_next(node, option, requests, temperature)


@router.get("/nodes/{node_id}/pending")
async def get_pending(
    node_id: str,
    option_id: str,
    generation: GenerationService = Depends(get_generation_service),
) -> dict[str, int]:
    return {"pending": generation.pending(node_id, option_id)}


@router.post("/nodes/{node_id}/evaluate")
async def evaluate_node(
    node_id: str,
    request: EvaluateRequest,
    service: TreeService = Depends(get_tree_service),
    scoring: ScoringService = Depends(get_scoring_service),
) -> NodeEvaluation:
    node, _ = _lookup(service, node_id)

    temperature = request.temperature
    if temperature is None and request.preset_id is not None:
        try:
            preset = get_preset(request.preset_id)
        except PresetNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        temperature = preset.default_analysis_temperature

    return await scoring.evaluate_node(node, request.model, temperature)


@router.get("/presets")
async def list_presets() -> list[Preset]:
    return load_presets()
