from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data=None, message="OK", status=200):
    content = {
        "success": True,
        "message": message,
    }
    if data is not None:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status, content=content)
