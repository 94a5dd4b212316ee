from ._pipeline import GesturePipeline, PipelineConfig
