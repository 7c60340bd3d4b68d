from fastapi.responses import ORJSONResponse


class JSONResponseUTF8(ORJSONResponse):
    media_type = 'application/json; charset=utf-8'
