#project.runserver.py

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "carmarket_admin.main:app",
        host="127.0.0.1",
        port=5002,
        reload=True
    )
