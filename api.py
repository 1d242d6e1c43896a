# api.py
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from tokenshield.utils.log import dbg

dbg("API", "Booting FastAPI...")

try:
    from tokenshield.core.scan import Scanner, default_context
    from tokenshield.utils.addr import normalize_mint
    dbg("API", "Import scanner: OK")
except Exception as e:
    dbg("API", f"Import scanner: FAIL -> {e}")
    raise

MAX_BATCH = 50

app = FastAPI(title="Token Shield API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api = APIRouter(prefix="/api")


def get_scanner() -> Scanner:
    return Scanner(default_context())


@api.get("/health")
def health(scanner: Scanner = Depends(get_scanner)):
    return {"ok": True, "cache": scanner.ctx.cache.get_stats()}


@api.get("/scan/{mint}")
def scan_mint(mint: str, evidence: bool = False, scanner: Scanner = Depends(get_scanner)):
    dbg("API", f"GET /api/scan/{mint} -> start")
    try:
        mint = normalize_mint(mint)
    except ValueError as ve:
        dbg("API", f"/scan ValueError mint={mint} -> {ve}")
        raise HTTPException(status_code=400, detail=str(ve))
    res = scanner.scan(mint)
    dbg("API", f"/scan OK mint={mint} score={res.score} badge={res.badge}")
    return {"mint": mint, **res.to_dict(include_evidence=evidence)}


class BatchScan(BaseModel):
    mints: List[str]
    concurrency: int = 2


@api.post("/batch")
def batch(job: BatchScan, scanner: Scanner = Depends(get_scanner)):
    dbg("API", f"POST /api/batch -> count={len(job.mints)} conc={job.concurrency}")
    if not job.mints:
        raise HTTPException(status_code=400, detail="mints list is empty")
    if len(job.mints) > MAX_BATCH:
        raise HTTPException(status_code=400, detail=f"at most {MAX_BATCH} mints per batch")

    def work(raw: str):
        try:
            mint = normalize_mint(raw)
        except ValueError as e:
            return {"mint": raw, "error": str(e)}
        res = scanner.scan(mint)
        return {"mint": mint, **res.to_dict(include_evidence=False)}

    out = []
    with ThreadPoolExecutor(max_workers=max(1, min(8, job.concurrency))) as ex:
        futs = {ex.submit(work, m): m for m in job.mints}
        for fut in as_completed(futs):
            try:
                out.append(fut.result())
            except Exception as e:
                dbg("API", f"/batch scan FAIL {futs[fut]} -> {e}")
                out.append({"mint": futs[fut], "error": str(e)})
    dbg("API", f"/batch completed -> {len(out)} results")
    return {"count": len(out), "results": out}


app.include_router(api)
