# SiteChat Embeddings Module
# Wraps a sentence-transformers model behind an explicit, reference-counted service

import logging
import threading
from typing import List, Optional

import numpy as np
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "sentence-transformers/all-MiniLM-L6-v2"


class EmbeddingService:
    """Generates normalized embeddings for chunks and queries"""

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME, cache_dir: Optional[str] = None,
                 batch_size: int = 32):
        """
        Initialize embedding service

        Args:
            model_name: Sentence transformer model name
            cache_dir: Directory the model files are cached in
            batch_size: Encode batch size for embed_batch
        """
        self.model_name = model_name
        self.cache_dir = cache_dir
        self.batch_size = batch_size
        self.model: Optional[SentenceTransformer] = None
        self._refcount = 0
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self.model is not None

    def initialize(self):
        """Load the sentence transformer model (idempotent)"""
        with self._lock:
            if self.model is not None:
                return
            logger.info(f"Loading embedding model: {self.model_name}")
            try:
                self.model = SentenceTransformer(self.model_name, cache_folder=self.cache_dir)
            except Exception as e:
                logger.error(f"Failed to load embedding model: {e}")
                raise
            logger.info(f"Model loaded successfully. Embedding dimension: {self.model.get_sentence_embedding_dimension()}")

    def acquire(self) -> "EmbeddingService":
        """Take a reference, loading the model on first use"""
        self.initialize()
        with self._lock:
            self._refcount += 1
        return self

    def release(self):
        """Drop a reference; the model is unloaded when none remain"""
        with self._lock:
            if self._refcount == 0:
                return
            self._refcount -= 1
            if self._refcount == 0:
                logger.info(f"Releasing embedding model: {self.model_name}")
                self.model = None

    def __enter__(self):
        return self.acquire()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    @property
    def dimension(self) -> int:
        if not self.model:
            raise RuntimeError("Model not loaded")
        return self.model.get_sentence_embedding_dimension()

    def embed(self, text: str) -> List[float]:
        """Generate the embedding for a single text"""
        if not self.model:
            raise RuntimeError("Model not loaded")

        text = (text or "").strip()
        if not text:
            return [0.0] * self.dimension

        embedding = self.model.encode(text, convert_to_numpy=True, normalize_embeddings=True)
        return np.asarray(embedding, dtype=np.float32).tolist()

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for multiple texts, in input order"""
        if not self.model:
            raise RuntimeError("Model not loaded")
        if not texts:
            return []

        cleaned_texts = [text.strip() if text else "" for text in texts]
        embeddings = self.model.encode(
            cleaned_texts,
            batch_size=self.batch_size,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        vectors = [np.asarray(embedding, dtype=np.float32).tolist() for embedding in embeddings]

        # Blank inputs map to the zero vector, like embed()
        for i, text in enumerate(cleaned_texts):
            if not text:
                vectors[i] = [0.0] * len(vectors[i])
        return vectors
