"""
Services module for the Tubely backend.

- upload_service: Upload orchestration and the error taxonomy
- media_service: Container probing, orientation and fast-start remux
- delivery_service: Object key layout and delivery URL strategies
- catalog_service: Video record lookup and update
"""
