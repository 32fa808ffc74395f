import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qa_casegen.deps import get_config
from qa_casegen.routers.batch_ws_api import router as batch_ws_router
from qa_casegen.routers.folders_api import router as folders_router
from qa_casegen.routers.mode_api import router as mode_router
from qa_casegen.routers.prompts_api import router as prompts_router
from qa_casegen.routers.tasks_api import router as tasks_router
from qa_casegen.utils.validation_exception_handler import add_exception_handlers


app = FastAPI(
        title="QA Case Generator API",
        version="1.0.0")

add_exception_handlers(app)

# --- Include all routers ---

app.include_router(tasks_router, prefix="/tasks", tags=["Batch Processing"])
app.include_router(folders_router, prefix="/folders", tags=["Folder Mapping"])
app.include_router(prompts_router, prefix="/prompts", tags=["Manual Prompt Workflow"])
app.include_router(mode_router, prefix="/mode", tags=["Generation Mode"])
app.include_router(batch_ws_router, tags=["Batch Progress WebSocket"])

@app.get("/")
async def root():
    return {"message": "Welcome to the QA Case Generator !"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


if __name__ == "__main__":
    server = get_config().server
    uvicorn.run("main:app", host=server.host, port=server.port, reload=server.debug)
