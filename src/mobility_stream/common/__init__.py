"""Transport and operational infrastructure shared by the generator and processor.

Import classes directly from submodules to avoid loading heavy dependencies:
    from mobility_stream.common.consumer import MessageConsumer
    from mobility_stream.common.producer import MessageProducer
    from mobility_stream.common.types import PipelineMessage
"""

# Concrete implementations are not imported here so that importing the
# package does not pull in aiokafka or aiohttp.

__all__: list[str] = []
