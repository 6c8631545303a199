from fastapi import APIRouter

router = APIRouter()


@router.get("/")
def root() -> dict[str, str]:
    return {"message": "Backend is running"}


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}
