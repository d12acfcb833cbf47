"""
Document composition services.

payload   QR text block and date/time formatting
qr        QR image encoding
template  template document loading
layout    stamping text, checkmarks and QR images onto the template
certificate  end-to-end pipeline and serialization
"""
