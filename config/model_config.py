# DEPENDENCIES
from pathlib import Path


class ModelConfig:
    """
    Model and scoring configuration - tunable constants for the detection engine
    """
    # Directory Settings
    MODEL_DIR          = Path("models")
    CACHE_DIR          = Path("cache/models")

    # Embedding Model Settings (legal-domain BERT, mean pooled through sentence-transformers)
    EMBEDDING_MODEL    = {"model_name"         : "nlpaueb/legal-bert-base-uncased",
                          "local_path"         : MODEL_DIR / "legal-bert-embeddings",
                          "model_version"      : "legal-bert-base-uncased-v1",
                          "dimension"          : 768,
                          "pooling"            : "mean",
                          "normalize"          : True,
                          "max_seq_length"     : 512,
                          "max_text_length"    : 512,
                          "batch_size"         : 32,
                          "batch_timeout"      : 0.1,
                          "memory_cache_limit" : 10000,
                          "retain_fraction"    : 0.8,
                          "cache_ttl_seconds"  : 24 * 3600,
                         }

    # Deterministic feature-hashing backend used offline and in tests
    HASHING_EMBEDDING  = {"model_version" : "hashing-v1",
                          "dimension"     : 768,
                          "ngram_range"   : (1, 2),
                         }

    # Hierarchical Rule Matching Settings
    RULE_MATCHING      = {"scoring_weights"      : {"keyword"     : 0.4,
                                                    "ml"          : 0.3,
                                                    "performance" : 0.2,
                                                    "base"        : 0.1,
                                                   },
                          "min_word_length"      : 4,
                          "partial_credit"       : 0.5,
                          "pattern_hit_score"    : 0.2,
                          "sentiment_hit_score"  : 0.1,
                          "match_type_cutoffs"   : {"exact"    : 0.9,
                                                    "semantic" : 0.7,
                                                    "keyword"  : 0.5,
                                                   },
                          "max_results"          : 5,
                          "confidence_threshold" : 0.3,
                          "span_before"          : 100,
                          "span_after"           : 400,
                          "default_span_length"  : 500,
                         }

    # ML Confidence Scoring Settings
    ML_SCORING         = {"default_feature_weights"     : {"span_length"             : 0.05,
                                                           "keyword_density"         : 0.15,
                                                           "sentiment_score"         : 0.08,
                                                           "readability_score"       : 0.06,
                                                           "paragraph_count"         : 0.04,
                                                           "sentence_count"          : 0.03,
                                                           "average_sentence_length" : 0.02,
                                                           "legal_term_density"      : 0.20,
                                                           "modal_verb_count"        : 0.08,
                                                           "definition_indicators"   : 0.12,
                                                           "cross_references"        : 0.09,
                                                           "document_position"       : 0.03,
                                                           "proximity_to_key_terms"  : 0.15,
                                                           "structural_markers"      : 0.10,
                                                           "historical_accuracy"     : 0.25,
                                                           "user_override_rate"      : -0.20,
                                                          },
                          "adjustment_bound"            : 0.3,
                          "f1_high_water"               : 0.8,
                          "f1_low_water"                : 0.5,
                          "history_boost"               : 0.1,
                          "history_penalty"             : -0.15,
                          "min_history_samples"         : 5,
                          "override_rate_threshold"     : 0.3,
                          "override_penalty"            : -0.2,
                          "default_historical_accuracy" : 0.7,
                          "default_override_rate"       : 0.1,
                          "legal_density_threshold"     : 0.1,
                          "legal_density_boost"         : 0.05,
                          "structure_boost"             : 0.03,
                          "length_boost"                : 0.02,
                          "length_range"                : (100, 1000),
                          "tone_boost"                  : 0.02,
                          "tone_boost_unacceptable"     : 0.05,
                          "min_score"                   : 0.1,
                          "max_score"                   : 1.0,
                          "degraded_jitter"             : 0.05,
                         }

    # Semantic Detection Settings
    SEMANTIC_DETECTION = {"window_words"          : 120,
                          "stride"                : 60,
                          "max_windows"           : 64,
                          "second_window_cutoff"  : 0.6,
                          "second_window_boost"   : 1.1,
                          "early_position_cutoff" : 0.3,
                          "early_position_boost"  : 1.15,
                          "late_position_cutoff"  : 0.7,
                          "late_position_boost"   : 1.1,
                          "header_boost"          : 1.2,
                         }

    # Keyword Detection Settings
    KEYWORD_DETECTION  = {"pattern_base"       : 0.8,
                          "pattern_length_cap" : 0.2,
                          "keyword_base"       : 0.6,
                          "keyword_step"       : 0.1,
                          "keyword_cap"        : 0.9,
                          "segment_before"     : 50,
                          "segment_after"      : 200,
                         }

    # Feedback Learning Settings
    LEARNING           = {"learning_rate"        : 0.01,
                          "weight_bound"         : 1.0,
                          "batch_size"           : 50,
                          "confidence_smoothing" : 0.1,
                          "min_rule_confidence"  : 0.1,
                          "max_rule_confidence"  : 1.0,
                          "quality_labels"       : {"accepted" : 1.0,
                                                    "rejected" : 0.0,
                                                    "modified" : 0.5,
                                                   },
                         }

    # Orchestration Settings
    ORCHESTRATION      = {"resolution_threshold" : 0.7,
                          "confidence_threshold" : 0.3,
                          "max_parallel"         : 4,
                          "analysis_cache_size"  : 100,
                          "generation_timeout"   : 20.0,
                         }

    # Text Generation Settings
    LLM_GENERATION     = {"max_tokens"  : 600,
                          "temperature" : 0.2,
                         }

