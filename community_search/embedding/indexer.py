"""Indexing pipeline: member profiles to embeddings in the Relevance Store."""

import logging
import time
from typing import Any

from tqdm.asyncio import tqdm

from community_search.embedding.gateway import EmbeddingGateway
from community_search.embedding.models import EmbeddingVector, MemberProfile
from community_search.embedding.store import RelevanceStore

logger = logging.getLogger(__name__)


class ProfileIndexer:
    """Embeds member profiles in batches and upserts them into the store."""

    def __init__(self, store: RelevanceStore, embeddings: EmbeddingGateway) -> None:
        """Initialize profile indexer.

        Args:
            store: Relevance Store to write into
            embeddings: Gateway used to embed profile documents
        """
        self.store = store
        self.embeddings = embeddings

    async def index_profiles(
        self,
        profiles: list[MemberProfile],
        batch_size: int = 10,
        show_progress: bool = True,
    ) -> dict[str, Any]:
        """Embed and store profiles.

        Profiles whose embedding fails are skipped and reported; the rest of
        the batch is still written.

        Args:
            profiles: Profiles to index
            batch_size: Profiles embedded concurrently per batch
            show_progress: Display a tqdm progress bar

        Returns:
            Dictionary with indexing statistics
        """
        total_batches = (len(profiles) + batch_size - 1) // batch_size
        logger.info(f"Indexing {len(profiles)} profiles in {total_batches} batches")

        progress = tqdm(
            total=len(profiles),
            desc="Embedding profiles",
            unit="profile",
            disable=not show_progress,
        )

        start_time = time.time()
        stored = 0
        failed: list[str] = []
        models: set[str] = set()

        for i in range(0, len(profiles), batch_size):
            batch = profiles[i : i + batch_size]
            batch_num = i // batch_size + 1

            results = await self.embeddings.embed_many(
                [profile.document() for profile in batch],
                return_exceptions=True,
            )

            ok_profiles: list[MemberProfile] = []
            ok_vectors: list[EmbeddingVector] = []
            for profile, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.warning(f"Failed to embed profile {profile.membership_id}: {result}")
                    failed.append(profile.membership_id)
                    continue
                ok_profiles.append(profile.model_copy(update={"embedding_model": result.model}))
                ok_vectors.append(result)
                models.add(result.model)

            if ok_profiles:
                stored += await self.store.upsert_profiles(ok_profiles, ok_vectors)

            progress.update(len(batch))
            elapsed = time.time() - start_time
            rate = (i + len(batch)) / elapsed if elapsed > 0 else 0
            logger.info(f"Batch {batch_num}/{total_batches} complete - {rate:.1f} profiles/sec")

        progress.close()

        if len(models) > 1:
            # Mixed models mean some stored vectors are not comparable with others
            logger.warning(f"Profiles were embedded with several models: {sorted(models)}")

        stats = {
            "profiles_total": len(profiles),
            "profiles_stored": stored,
            "profiles_failed": failed,
            "embedding_models": sorted(models),
            "elapsed_seconds": round(time.time() - start_time, 2),
        }
        logger.info(f"Indexing completed: {stored}/{len(profiles)} profiles stored")
        return stats
