"""Reference data endpoints — symptoms, disorders, questions, phases.

Read-only views over the loaded knowledge base.  They don't require
authentication since the data is public reference information.
"""

from fastapi import APIRouter, Depends, HTTPException

from progressive_dx.knowledge import KnowledgeBase

from progressive_dx_server.dependencies import get_knowledge_base

router = APIRouter(prefix="/reference", tags=["reference"])


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/symptoms")
def list_symptoms(
    kb: KnowledgeBase = Depends(get_knowledge_base),
) -> list[dict]:
    """Return every symptom code the engine accepts."""
    return [
        {
            "code": sym.code,
            "label": sym.label,
            "category": sym.category,
        }
        for sym in kb.symptoms.values()
    ]


@router.get("/disorders")
def list_disorders(
    kb: KnowledgeBase = Depends(get_knowledge_base),
) -> list[dict]:
    """Return all disorders with their urgency tier."""
    return [
        {
            "code": d.code,
            "name": d.name,
            "icd10": d.icd10,
            "urgency": d.urgency.value,
            "emergency": d.emergency,
        }
        for d in kb.disorders.values()
    ]


@router.get("/disorders/{code}")
def get_disorder(
    code: str,
    kb: KnowledgeBase = Depends(get_knowledge_base),
) -> dict:
    """Full definition of one disorder, including its symptom signature."""
    if code not in kb.disorders:
        raise HTTPException(status_code=404, detail="Resource not found")
    return kb.get_disorder(code).model_dump(mode="json")


@router.get("/phases")
def list_phases(
    kb: KnowledgeBase = Depends(get_knowledge_base),
) -> list[dict]:
    """Return the per-phase policies (ceiling, minimum questions)."""
    return [p.model_dump(mode="json") for p in kb.phase_policies.values()]


@router.get("/questions")
def list_questions(
    kb: KnowledgeBase = Depends(get_knowledge_base),
) -> list[dict]:
    """Return the question bank (raw prompt templates, not rendered)."""
    return [
        {
            "qid": q.qid,
            "category": q.category,
            "target_symptoms": list(q.target_symptoms),
            "phases": [p.value for p in q.phases],
        }
        for q in kb.questions.values()
    ]
