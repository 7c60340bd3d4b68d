from fastapi import APIRouter, HTTPException, Response

from config import IMAGE_CACHE_MAX_AGE
from dependencies import ContextDep
from utils import make_cache_control

router = APIRouter(prefix='/images')


@router.get('/{filename}')
async def view(context: ContextDep, filename: str):
    data = await context.images.get(filename)
    if data is None:
        raise HTTPException(404, f'Image {filename!r} not found')

    # keys are never reused, so the content is immutable
    return Response(
        data,
        media_type='image/jpeg',
        headers={'Cache-Control': make_cache_control(IMAGE_CACHE_MAX_AGE, IMAGE_CACHE_MAX_AGE)},
    )
