"""Async functional build cache operations."""

import contextlib
import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from .archive.stream import CacheStream, stream_chain
from .core.cancel import CancelToken
from .core.engine_client import EngineClient
from .core.types import EngineConfig, SystemInfo
from .exceptions import StoreAccessError
from .store.layout import StoreLayout
from .store.resolver import DEFAULT_MAX_DEPTH, resolve_chain

logger = logging.getLogger(__name__)


async def _lookup(engine: EngineClient, reference: str) -> tuple[str, SystemInfo]:
    image_id = await engine.inspect_image(reference)
    info = await engine.info()
    return image_id, info


async def get_build_cache(
    reference: str,
    graph_dir: str | Path | None = None,
    *,
    engine: EngineClient | None = None,
    config: EngineConfig | None = None,
    cancel: CancelToken | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> CacheStream:
    """이미지의 빌드 캐시 아카이브 스트림을 생성합니다.

    Docker Engine에서 이미지 digest와 저장소 위치를 조회한 뒤, 디스크의
    이미지 메타데이터 저장소에서 부모 체인을 읽고 검증하여 tar+gzip
    스트림으로 반환합니다. 스트림은 백그라운드에서 생성됩니다.

    Args:
        reference: 이미지 참조 (예: "nginx:alpine", "sha256:abc123...")
        graph_dir: Docker 저장소 루트 디렉토리 (선택사항, 기본값: 엔진의 DockerRootDir)
            - 예: "/var/lib/docker", "/mnt/host/var/lib/docker"
        engine: 이미 열린 EngineClient (선택사항, 없으면 config로 새로 연결)
        config: Engine 연결 설정 (선택사항, 기본값: DOCKER_HOST 환경변수)
        cancel: 취소 토큰 (선택사항)
        max_depth: 부모 체인의 최대 길이

    Returns:
        CacheStream: 아카이브 바이트를 순서대로 내보내는 스트림

    Raises:
        DigestResolutionError: 이미지 참조를 digest로 변환할 수 없는 경우
        EngineConnectionError: Docker Engine에 연결할 수 없는 경우
        StoreAccessError: 저장소 디렉토리에 접근할 수 없는 경우
        CorruptionError: 저장된 설정이 digest와 일치하지 않는 경우
        ParentResolutionError: 부모 포인터가 올바르지 않은 경우
        CycleSuspectedError: 부모 체인에 순환이 있거나 너무 깊은 경우
        LayerMismatchError: 자식 이미지의 레이어가 부모 레이어를 확장하지 않는 경우

    Examples:
        # 빌드 캐시를 메모리로 읽기
        stream = await get_build_cache("myapp:latest")
        async with stream:
            data = b"".join([chunk async for chunk in stream])

        # 다른 저장소 디렉토리 지정
        stream = await get_build_cache("myapp:latest", "/mnt/host/var/lib/docker")
    """
    if engine is None:
        async with EngineClient(config) as client:
            image_id, info = await _lookup(client, reference)
    else:
        image_id, info = await _lookup(engine, reference)

    root_dir = graph_dir or info.root_dir
    layout = StoreLayout.for_driver(root_dir, info.driver)

    if not await aiofiles.os.path.exists(layout.content_path(image_id)):
        raise StoreAccessError(
            f"Could not access files from the Docker storage directory {root_dir}. "
            "This application requires direct access to this directory for saving "
            'build cache. Use "--graph" option to specify different folder.'
        )

    chain = await resolve_chain(layout, image_id, max_depth=max_depth, cancel=cancel)
    logger.info(f"Resolved {reference} to a chain of {len(chain)} images")
    return stream_chain(chain, cancel)


async def save_build_cache(
    reference: str,
    output: str | Path,
    graph_dir: str | Path | None = None,
    *,
    engine: EngineClient | None = None,
    config: EngineConfig | None = None,
    cancel: CancelToken | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> int:
    """이미지의 빌드 캐시를 파일로 저장합니다.

    실패하거나 취소되면 일부만 기록된 출력 파일은 삭제됩니다.

    Args:
        reference: 이미지 참조 (예: "nginx:alpine")
        output: 출력 파일 경로 (예: "cache.tar.gz", "./exports/myapp-cache.tgz")
        graph_dir: Docker 저장소 루트 디렉토리 (선택사항)
        engine: 이미 열린 EngineClient (선택사항)
        config: Engine 연결 설정 (선택사항)
        cancel: 취소 토큰 (선택사항)
        max_depth: 부모 체인의 최대 길이

    Returns:
        int: 기록된 바이트 수

    Raises:
        BuildCacheError: 조회, 검증 또는 스트림 생성이 실패한 경우

    Examples:
        # 빌드 캐시 저장
        size = await save_build_cache("myapp:latest", "myapp-cache.tgz")
        print(f"저장 완료: {size:,} bytes")
    """
    stream = await get_build_cache(
        reference,
        graph_dir,
        engine=engine,
        config=config,
        cancel=cancel,
        max_depth=max_depth,
    )

    try:
        async with stream:
            async with aiofiles.open(output, "wb") as f:
                written = await stream.copy_to(f)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            await aiofiles.os.remove(output)
        raise

    logger.info(f"Saved build cache for {reference} to {output} ({written} bytes)")
    return written
