from signer_monitor.main import main


raise SystemExit(main())
